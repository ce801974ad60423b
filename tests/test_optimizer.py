"""Tests for the embedding optimizer."""

import numpy as np
import pytest

from neighbor_embedding import (
    ConfigurationError,
    DimensionError,
    EmbeddingOptimizer,
    OptimizerState,
    Randomizer,
    SimilarityEstimator,
    symmetrize,
)
from neighbor_embedding.metrics import distance_matrix


def naive_gradient(P, Y, pmul):
    n, dim = Y.shape
    Q = np.zeros((n, n))
    for i in range(n):
        for j in range(n):
            if i != j:
                Q[i, j] = 1.0 / (1.0 + np.sum((Y[i] - Y[j]) ** 2))
    qsum = Q.sum()
    grad = np.zeros_like(Y)
    for i in range(n):
        for j in range(n):
            if i != j:
                grad[i] += 4 * (pmul * P[i, j] - Q[i, j] / qsum) * Q[i, j] * (Y[i] - Y[j])
    return grad


@pytest.fixture
def P(outlier_data):
    conditional = SimilarityEstimator().compute_affinities(distance_matrix(outlier_data), perplexity=3)
    return symmetrize(conditional)


@pytest.fixture
def optimizer(P):
    return EmbeddingOptimizer(P, output_dim=2, learning_rate=10.0, randomizer=Randomizer(1212)).init()


class TestLifecycle:
    """Test cases for the optimizer state machine."""

    def test_step_before_init_raises(self, P):
        opt = EmbeddingOptimizer(P)
        assert opt.state is OptimizerState.UNINITIALIZED
        with pytest.raises(ConfigurationError):
            opt.step()

    def test_init_allocates_state(self, optimizer):
        assert optimizer.state is OptimizerState.INITIALIZED
        assert optimizer.iteration == 0
        assert optimizer.Y.shape == (10, 2)
        assert np.abs(optimizer.Y).max() < 1e-2
        assert (optimizer.velocity == 0).all()
        assert (optimizer.gains == 1).all()

    def test_step_advances_and_returns_shared_embedding(self, optimizer):
        Y = optimizer.Y
        returned = optimizer.step()
        assert returned is Y
        assert optimizer.iteration == 1
        assert optimizer.state is OptimizerState.STEPPED

    def test_reinit_resets(self, optimizer):
        for _ in range(5):
            optimizer.step()
        optimizer.init()
        assert optimizer.iteration == 0
        assert (optimizer.gains == 1).all()

    def test_initial_embedding_shape_checked(self, P):
        opt = EmbeddingOptimizer(P, output_dim=2)
        with pytest.raises(DimensionError):
            opt.init(np.zeros((10, 3)))

    def test_invalid_parameters(self, P):
        with pytest.raises(ConfigurationError):
            EmbeddingOptimizer(P, output_dim=0)
        with pytest.raises(ConfigurationError):
            EmbeddingOptimizer(P, learning_rate=0)
        with pytest.raises(DimensionError):
            EmbeddingOptimizer(np.ones((3, 4)))


class TestGradient:
    """Test cases for the KL gradient and early exaggeration."""

    def test_matches_naive_gradient_during_exaggeration(self, optimizer, P):
        optimizer.Y[:] = Randomizer(3).gauss((10, 2))
        # next step is the 99th, the last exaggerated one
        optimizer.iteration = 98
        np.testing.assert_allclose(optimizer.gradient(), naive_gradient(P, optimizer.Y, 4.0), atol=1e-10)

    def test_exaggeration_removed_at_step_100(self, optimizer, P):
        optimizer.Y[:] = Randomizer(3).gauss((10, 2))
        optimizer.iteration = 99
        np.testing.assert_allclose(optimizer.gradient(), naive_gradient(P, optimizer.Y, 1.0), atol=1e-10)

    def test_step_100_uses_plain_affinities(self, optimizer, P):
        for _ in range(99):
            optimizer.step()
        assert optimizer.iteration == 99
        expected = naive_gradient(P, optimizer.Y, 1.0)
        np.testing.assert_allclose(optimizer.gradient(), expected, atol=1e-10)
        assert not np.allclose(expected, naive_gradient(P, optimizer.Y, 4.0))

    def test_gradient_does_not_accumulate(self, optimizer):
        first = optimizer.gradient().copy()
        second = optimizer.gradient()
        np.testing.assert_array_equal(first, second)


class TestStep:
    """Test cases for the adaptive gain and momentum update."""

    def test_first_step_update(self, optimizer):
        Y0 = optimizer.Y.copy()
        grad = optimizer.gradient().copy()
        optimizer.step()

        # velocity starts at zero, so every nonzero gradient disagrees in sign
        expected_gains = np.where(grad != 0, 1.2, 0.8)
        np.testing.assert_allclose(optimizer.gains, expected_gains)
        np.testing.assert_allclose(optimizer.velocity, -10.0 * expected_gains * grad)

        moved = Y0 + optimizer.velocity
        np.testing.assert_allclose(optimizer.Y, moved - moved.mean(axis=0))

    def test_centered_after_every_step(self, optimizer):
        for _ in range(300):
            Y = optimizer.step()
            np.testing.assert_allclose(Y.sum(axis=0), 0.0, atol=1e-9)

    def test_gain_floor(self, optimizer):
        for _ in range(300):
            optimizer.step()
            assert (optimizer.gains >= 0.01).all()

    def test_kl_divergence_decreases(self, optimizer):
        initial = optimizer.kl_divergence()
        for _ in range(300):
            optimizer.step()
        final = optimizer.kl_divergence()
        assert final >= 0
        assert final < initial

    @pytest.mark.parametrize("completed,momentum", [(248, 0.5), (249, 0.8)])
    def test_momentum_switches_at_step_250(self, optimizer, completed, momentum):
        for _ in range(5):
            optimizer.step()
        optimizer.iteration = completed
        velocity = optimizer.velocity.copy()
        assert np.abs(velocity).max() > 1e-9
        grad = optimizer.gradient().copy()

        optimizer.step()

        expected = momentum * velocity - 10.0 * optimizer.gains * grad
        np.testing.assert_allclose(optimizer.velocity, expected, atol=1e-12)
