"""Symmetrization of conditional affinities into the joint target distribution."""

import numpy as np
from .exceptions import DimensionError


def symmetrize(P_raw: np.ndarray) -> np.ndarray:
    """Fold conditional affinities into a symmetric joint distribution.

    ``P[i, j] = (p(j|i) + p(i|j)) / (2N)``. With row-stochastic input the
    result sums to 1.

    Args:
        P_raw: Row-stochastic affinity matrix (n_samples, n_samples)

    Returns:
        New symmetric affinity matrix; the input is left untouched
    """
    P_raw = np.asarray(P_raw, dtype=float)
    if P_raw.ndim != 2 or P_raw.shape[0] != P_raw.shape[1]:
        raise DimensionError(f"Affinity matrix must be square, got shape {P_raw.shape}")

    n_samples = P_raw.shape[0]
    return (P_raw + P_raw.T) / (2 * n_samples)
