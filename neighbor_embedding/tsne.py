"""t-SNE session: affinity calibration, symmetrization and optimization."""

import numpy as np
from typing import Iterator, Optional, Protocol
import logging
from .config import TSNEConfig
from .exceptions import ConfigurationError, DimensionError
from .metrics import PRECOMPUTED, distance_matrix, resolve_metric
from .optimizer import EmbeddingOptimizer
from .randomizer import Randomizer
from .similarity import SimilarityEstimator
from .symmetrize import symmetrize

logger = logging.getLogger(__name__)


class DimensionalityReducer(Protocol):
    """What every reduction algorithm in the package offers."""

    def init(self) -> 'DimensionalityReducer':
        ...

    def transform(self, iterations: int = 500) -> np.ndarray:
        ...

    def generator(self, iterations: int = 500) -> Iterator[np.ndarray]:
        ...


class TSNE:
    """t-distributed stochastic neighbor embedding of a data matrix."""

    def __init__(self, X: np.ndarray, config: Optional[TSNEConfig] = None,
                 randomizer: Optional[Randomizer] = None, **overrides):
        """Initialize session.

        Args:
            X: High-dimensional data (n_samples, n_features), or a distance
                matrix (n_samples, n_samples) when the metric is "precomputed"
            config: t-SNE configuration (defaults used when omitted)
            randomizer: Random source for the initial embedding; a new one
                seeded with ``config.seed`` is created when omitted
            **overrides: Individual TSNEConfig fields, e.g. ``perplexity=5``
        """
        config = config if config is not None else TSNEConfig()
        if overrides:
            unknown = set(overrides) - set(TSNEConfig.__dataclass_fields__)
            if unknown:
                raise ConfigurationError(f"Unknown t-SNE parameters: {sorted(unknown)}")
            config = TSNEConfig(**{**config.__dict__, **overrides})
        config.validate()

        X = np.array(X, dtype=float)
        if X.ndim != 2 or X.shape[0] == 0 or X.shape[1] == 0:
            raise ConfigurationError(f"Input must be a non-empty 2-D matrix, got shape {X.shape}")
        if X.shape[0] < 2:
            raise ConfigurationError("At least two samples are needed for an embedding")

        self._metric = resolve_metric(config.metric)
        if self._metric == PRECOMPUTED and X.shape[0] != X.shape[1]:
            raise DimensionError(f"Precomputed distances must be square, got shape {X.shape}")

        X.flags.writeable = False
        self.X = X
        self.config = config
        self.randomizer = randomizer if randomizer is not None else Randomizer(config.seed)
        self.estimator = SimilarityEstimator(n_jobs=config.n_jobs)

        self._P = None
        self._optimizer = None

    @property
    def n_samples(self) -> int:
        return self.X.shape[0]

    @property
    def affinities(self) -> Optional[np.ndarray]:
        """The fixed joint target distribution P (read-only)."""
        return self._P

    @property
    def projection(self) -> Optional[np.ndarray]:
        """The current embedding, or None before ``init``."""
        return None if self._optimizer is None else self._optimizer.Y

    @property
    def iteration(self) -> int:
        return 0 if self._optimizer is None else self._optimizer.iteration

    @property
    def optimizer(self) -> Optional[EmbeddingOptimizer]:
        return self._optimizer

    def init(self) -> 'TSNE':
        """Compute the target distribution and set up the optimizer.

        Calling it again restarts the randomizer from its own seed, which is
        ``config.seed`` unless a randomizer was passed in, and starts the run
        over.
        """
        logger.info(f"Initializing t-SNE for {self.n_samples} samples: "
                    f"perplexity={self.config.perplexity}, "
                    f"learning_rate={self.config.learning_rate}, "
                    f"output_dim={self.config.output_dim}")

        if self._metric == PRECOMPUTED:
            delta = self.X
        else:
            delta = distance_matrix(self.X, self._metric)

        P_raw = self.estimator.compute_affinities(delta, self.config.perplexity)
        P = symmetrize(P_raw)
        P.flags.writeable = False
        self._P = P

        self.randomizer.reseed()
        self._optimizer = EmbeddingOptimizer(
            P,
            output_dim=self.config.output_dim,
            learning_rate=self.config.learning_rate,
            randomizer=self.randomizer,
        ).init()
        return self

    def check_init(self) -> None:
        """Raise ConfigurationError unless ``init`` has been called."""
        if self._optimizer is None:
            raise ConfigurationError("Call init() before transform() or generator()")

    def _step(self) -> np.ndarray:
        Y = self._optimizer.step()
        log_every = self.config.log_every
        if log_every and self._optimizer.iteration % log_every == 0 and logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Iteration {self._optimizer.iteration}: "
                         f"KL divergence {self._optimizer.kl_divergence():.6f}, "
                         f"gradient norm {self._optimizer.gradient_norm_:.6g}")
        return Y

    def transform(self, iterations: Optional[int] = None) -> np.ndarray:
        """Run ``iterations`` optimization steps.

        Args:
            iterations: Number of steps (``config.iterations`` when omitted)

        Returns:
            The embedding (n_samples, output_dim)
        """
        self.check_init()
        iterations = self.config.iterations if iterations is None else iterations
        for _ in range(iterations):
            self._step()
        return self.projection

    def generator(self, iterations: Optional[int] = None) -> Iterator[np.ndarray]:
        """Lazily run ``iterations`` steps, one per pull.

        Each yielded array is the live embedding, not a copy: the next pull
        overwrites it. Copy a snapshot to keep it.
        """
        iterations = self.config.iterations if iterations is None else iterations
        self.check_init()
        for _ in range(iterations):
            yield self._step()

    def fit_transform(self, iterations: Optional[int] = None) -> np.ndarray:
        """``init`` followed by ``transform``."""
        return self.init().transform(iterations)
