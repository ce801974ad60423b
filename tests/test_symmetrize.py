"""Tests for the joint target distribution."""

import numpy as np
import pytest

from neighbor_embedding import DimensionError, SimilarityEstimator, symmetrize
from neighbor_embedding.metrics import distance_matrix


@pytest.fixture
def conditional(outlier_data):
    return SimilarityEstimator().compute_affinities(distance_matrix(outlier_data), perplexity=3)


def test_sums_to_one(conditional):
    P = symmetrize(conditional)
    assert abs(P.sum() - 1.0) < 1e-9


def test_is_symmetric(conditional):
    P = symmetrize(conditional)
    assert np.array_equal(P, P.T)


def test_formula(conditional):
    P = symmetrize(conditional)
    n = conditional.shape[0]
    assert P[1, 4] == pytest.approx((conditional[1, 4] + conditional[4, 1]) / (2 * n))


def test_input_untouched(conditional):
    before = conditional.copy()
    symmetrize(conditional)
    assert np.array_equal(conditional, before)


def test_non_square_raises():
    with pytest.raises(DimensionError):
        symmetrize(np.ones((2, 3)))
