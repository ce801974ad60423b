"""Gradient descent on the low-dimensional embedding."""

import numpy as np
from enum import Enum
from typing import Optional
import logging
from .exceptions import ConfigurationError, DimensionError
from .randomizer import Randomizer

logger = logging.getLogger(__name__)

EXAGGERATION = 4.0
EXAGGERATION_ITERATIONS = 100
INITIAL_MOMENTUM = 0.5
FINAL_MOMENTUM = 0.8
MOMENTUM_SWITCH_ITERATION = 250
GAIN_INCREASE = 0.2
GAIN_DECAY = 0.8
MIN_GAIN = 0.01
INITIAL_SCALE = 1e-4


class OptimizerState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    STEPPED = "stepped"


class EmbeddingOptimizer:
    """Owns the embedding Y and moves it one gradient step per call.

    The optimizer keeps two scratch buffers, an N x N kernel matrix and an
    N x d gradient, that are overwritten on every step. The embedding array
    returned by ``step`` is the same object for the whole run; references to
    it see every later update.
    """

    def __init__(self, P: np.ndarray, output_dim: int = 2,
                 learning_rate: float = 10.0,
                 randomizer: Optional[Randomizer] = None):
        """Initialize optimizer.

        Args:
            P: Symmetric joint affinities summing to 1 (n_samples, n_samples)
            output_dim: Dimensionality of the embedding
            learning_rate: Step size applied to the gain-scaled gradient
            randomizer: Source for the initial embedding
        """
        P = np.asarray(P, dtype=float)
        if P.ndim != 2 or P.shape[0] != P.shape[1]:
            raise DimensionError(f"Affinity matrix must be square, got shape {P.shape}")
        if output_dim is None or int(output_dim) <= 0:
            raise ConfigurationError(f"output_dim must be positive, got {output_dim}")
        if learning_rate <= 0:
            raise ConfigurationError(f"learning_rate must be positive, got {learning_rate}")

        self.P = P
        self.output_dim = int(output_dim)
        self.learning_rate = float(learning_rate)
        self.randomizer = randomizer if randomizer is not None else Randomizer()

        self.state = OptimizerState.UNINITIALIZED
        self.iteration = 0
        self.Y = None
        self.velocity = None
        self.gains = None
        self.gradient_norm_ = None

        self._Q = None
        self._grad = None

    @property
    def n_samples(self) -> int:
        return self.P.shape[0]

    def init(self, initial_embedding: Optional[np.ndarray] = None) -> 'EmbeddingOptimizer':
        """Allocate the embedding, the step state and the scratch buffers.

        Args:
            initial_embedding: Optional starting embedding (n_samples, output_dim);
                drawn from 1e-4 scaled Gaussian noise when omitted

        Returns:
            self
        """
        shape = (self.n_samples, self.output_dim)
        if initial_embedding is None:
            self.Y = self.randomizer.gauss(shape) * INITIAL_SCALE
        else:
            initial_embedding = np.array(initial_embedding, dtype=float)
            if initial_embedding.shape != shape:
                raise DimensionError(f"Initial embedding must have shape {shape}, "
                                     f"got {initial_embedding.shape}")
            self.Y = initial_embedding

        self.velocity = np.zeros(shape)
        self.gains = np.ones(shape)
        self._Q = np.empty((self.n_samples, self.n_samples))
        self._grad = np.empty(shape)

        self.iteration = 0
        self.gradient_norm_ = None
        self.state = OptimizerState.INITIALIZED
        return self

    def check_init(self) -> None:
        """Raise ConfigurationError unless ``init`` has been called."""
        if self.state is OptimizerState.UNINITIALIZED:
            raise ConfigurationError("Call init() before stepping the optimizer")

    def _student_t(self, Y: np.ndarray, out: np.ndarray) -> float:
        """Fill ``out`` with 1 / (1 + |y_i - y_j|^2), zero diagonal; return its sum."""
        sum_Y = np.einsum('ij,ij->i', Y, Y)
        np.dot(Y, Y.T, out=out)
        out *= -2.0
        out += sum_Y[:, np.newaxis]
        out += sum_Y[np.newaxis, :]
        np.maximum(out, 0.0, out=out)
        out += 1.0
        np.reciprocal(out, out=out)
        np.fill_diagonal(out, 0.0)
        return float(out.sum())

    def gradient(self) -> np.ndarray:
        """Gradient of KL(P || Q) at the current embedding.

        Early exaggeration multiplies P by 4 for steps 1 to 99.
        The result lives in the optimizer's scratch buffer.
        """
        self.check_init()
        Y = self.Y
        Q = self._Q
        qsum = self._student_t(Y, Q)

        # counted from 1, so the 100th step is the first without exaggeration
        pmul = EXAGGERATION if self.iteration + 1 < EXAGGERATION_ITERATIONS else 1.0

        # W_ij = (pmul * P_ij - Q_ij / qsum) * Q_ij, diagonal stays zero
        W = pmul * self.P - Q / qsum
        W *= Q

        # sum_j W_ij (y_i - y_j) = y_i * sum_j W_ij - (W Y)_i
        grad = self._grad
        np.multiply(W.sum(axis=1)[:, np.newaxis], Y, out=grad)
        grad -= W @ Y
        grad *= 4.0
        return grad

    def step(self) -> np.ndarray:
        """Perform one optimization step.

        Returns:
            The embedding (n_samples, output_dim), updated in place
        """
        self.check_init()
        grad = self.gradient()

        step_number = self.iteration + 1
        momentum = INITIAL_MOMENTUM if step_number < MOMENTUM_SWITCH_ITERATION else FINAL_MOMENTUM

        # grow gains where the gradient reverses the running direction
        disagree = np.sign(grad) != np.sign(self.velocity)
        self.gains[disagree] += GAIN_INCREASE
        self.gains[~disagree] *= GAIN_DECAY
        np.maximum(self.gains, MIN_GAIN, out=self.gains)

        self.velocity *= momentum
        self.velocity -= self.learning_rate * self.gains * grad
        self.Y += self.velocity

        self.Y -= self.Y.mean(axis=0)

        self.gradient_norm_ = float(np.linalg.norm(grad))
        self.iteration += 1
        self.state = OptimizerState.STEPPED
        return self.Y

    def kl_divergence(self) -> float:
        """KL(P || Q) of the current embedding, without exaggeration."""
        self.check_init()
        Q = np.empty_like(self._Q)
        qsum = self._student_t(self.Y, Q)
        Q /= qsum

        mask = self.P > 0
        np.fill_diagonal(mask, False)
        P = self.P[mask]
        return float(np.sum(P * np.log(P / np.maximum(Q[mask], np.finfo(float).tiny))))
