"""Shared datasets for the test suite."""

import numpy as np
import pytest


@pytest.fixture
def two_pairs():
    """Four points in 3-D forming two tight, well separated pairs."""
    return np.array([
        [0.0, 0.0, 0.0],
        [0.1, 0.0, 0.0],
        [10.0, 10.0, 10.0],
        [10.1, 10.0, 10.0],
    ])


@pytest.fixture
def outlier_data():
    """Nine clustered points plus one outlier in 3-D."""
    rng = np.random.default_rng(0)
    cluster = rng.normal(size=(9, 3))
    outlier = np.array([[6.0, 6.0, 6.0]])
    return np.vstack([cluster, outlier])


@pytest.fixture
def blobs():
    """Three Gaussian blobs of ten points each in 5-D, with labels."""
    rng = np.random.default_rng(42)
    centers = np.array([
        [0.0, 0.0, 0.0, 0.0, 0.0],
        [8.0, 8.0, 0.0, 0.0, 0.0],
        [0.0, 8.0, 8.0, 8.0, 0.0],
    ])
    X = np.vstack([c + rng.normal(scale=0.5, size=(10, 5)) for c in centers])
    labels = [name for name in ("a", "b", "c") for _ in range(10)]
    return X, labels
