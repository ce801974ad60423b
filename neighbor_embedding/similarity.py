"""Perplexity-calibrated Gaussian affinities in the input space."""

import numpy as np
from typing import Optional, Tuple
import logging
from multiprocessing import Pool
from functools import partial
from .exceptions import ConfigurationError, DimensionError

logger = logging.getLogger(__name__)


def calibrate_row(distances: np.ndarray, index: int, target_entropy: float,
                  tol: float = 1e-4, max_tries: int = 50,
                  self_affinity: float = 1e-9) -> Tuple[np.ndarray, float, float, int]:
    """Binary-search the precision of one row's Gaussian kernel.

    The precision ``beta`` starts at 1 and is doubled (entropy too high) or
    halved (entropy too low) until both bounds are known, then bisected.
    When the budget runs out the last evaluated ``beta`` is kept.

    Args:
        distances: Row ``index`` of the distance matrix
        index: Position of the point itself within the row
        target_entropy: log(perplexity)
        tol: Accepted absolute entropy error
        max_tries: Maximum number of kernel evaluations
        self_affinity: Kernel value on the diagonal

    Returns:
        Tuple of (normalized row, beta, entropy, tries used)
    """
    beta = 1.0
    beta_min = -np.inf
    beta_max = np.inf
    off_diagonal = np.arange(distances.shape[0]) != index

    row = np.empty_like(distances, dtype=float)
    entropy = 0.0
    kernel_sum = 1.0
    tries = 0
    while tries < max_tries:
        tries += 1
        row[off_diagonal] = np.exp(-beta * distances[off_diagonal])
        row[index] = self_affinity
        kernel_sum = row.sum()
        entropy = np.log(kernel_sum) + beta * np.dot(distances, row) / kernel_sum

        if abs(entropy - target_entropy) < tol:
            break

        if entropy > target_entropy:
            beta_min = beta
            beta = beta * 2 if beta_max == np.inf else (beta + beta_max) / 2
        else:
            beta_max = beta
            beta = beta / 2 if beta_min == -np.inf else (beta + beta_min) / 2
    else:
        # loop exhausted, undo the update that was never evaluated
        beta = beta_min if entropy > target_entropy else beta_max

    row /= kernel_sum
    return row, float(beta), float(entropy), tries


class SimilarityEstimator:
    """Computes row-stochastic input-space affinities for a target perplexity."""

    def __init__(self, tol: float = 1e-4, max_tries: int = 50,
                 self_affinity: float = 1e-9, n_jobs: Optional[int] = None):
        """Initialize estimator.

        Args:
            tol: Accepted absolute error between row entropy and log(perplexity)
            max_tries: Binary search budget per row
            self_affinity: Kernel value kept on the diagonal so no row is all zero
            n_jobs: Worker processes for the row searches (None or 1: sequential,
                -1: one per CPU)
        """
        if max_tries < 1:
            raise ConfigurationError(f"max_tries must be at least 1, got {max_tries}")
        self.tol = tol
        self.max_tries = max_tries
        self.self_affinity = self_affinity
        self.n_jobs = n_jobs

        self.betas_ = None
        self.entropies_ = None
        self.tries_ = None

    def compute_affinities(self, delta: np.ndarray, perplexity: float) -> np.ndarray:
        """Compute the conditional affinities p(j|i) for every row.

        Args:
            delta: Distance matrix (n_samples, n_samples)
            perplexity: Effective neighborhood size

        Returns:
            Row-stochastic affinity matrix (n_samples, n_samples)
        """
        delta = np.asarray(delta, dtype=float)
        if delta.ndim != 2 or delta.shape[0] != delta.shape[1]:
            raise DimensionError(f"Distance matrix must be square, got shape {delta.shape}")
        if perplexity is None or perplexity <= 0:
            raise ConfigurationError(f"perplexity must be positive, got {perplexity}")

        n_samples = delta.shape[0]
        target_entropy = np.log(perplexity)
        if perplexity >= n_samples:
            logger.warning(f"Perplexity {perplexity} is not below the number of samples "
                           f"({n_samples}); calibration cannot reach its target")

        search = partial(
            calibrate_row,
            target_entropy=target_entropy,
            tol=self.tol,
            max_tries=self.max_tries,
            self_affinity=self.self_affinity,
        )

        if self.n_jobs is not None and self.n_jobs != 1 and n_samples > 1:
            processes = None if self.n_jobs < 0 else self.n_jobs
            logger.debug(f"Calibrating {n_samples} rows with {processes or 'all'} processes")
            with Pool(processes=processes) as pool:
                results = pool.starmap(search, ((delta[i], i) for i in range(n_samples)))
        else:
            results = [search(delta[i], i) for i in range(n_samples)]

        P = np.vstack([row for row, _, _, _ in results])
        self.betas_ = np.array([beta for _, beta, _, _ in results])
        self.entropies_ = np.array([entropy for _, _, entropy, _ in results])
        self.tries_ = np.array([tries for _, _, _, tries in results])

        unconverged = int(np.sum(np.abs(self.entropies_ - target_entropy) >= self.tol))
        if unconverged:
            logger.warning(f"{unconverged} of {n_samples} rows did not reach the target "
                           f"entropy within {self.max_tries} tries")
        logger.debug(f"Mean precision: {self.betas_.mean():.6g}, "
                     f"mean tries: {self.tries_.mean():.1f}")

        return P
