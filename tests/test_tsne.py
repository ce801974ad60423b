"""Tests for the t-SNE session."""

import numpy as np
import pytest

from neighbor_embedding import (
    TSNE,
    ConfigurationError,
    DimensionError,
    Randomizer,
    TSNEConfig,
)
from neighbor_embedding.metrics import distance_matrix


class TestConstruction:
    """Test cases for parameter validation."""

    def test_defaults(self, outlier_data):
        tsne = TSNE(outlier_data)
        assert tsne.config.perplexity == 50
        assert tsne.config.learning_rate == 10
        assert tsne.config.output_dim == 2
        assert tsne.config.seed == 1212
        assert tsne.projection is None

    def test_overrides(self, outlier_data):
        tsne = TSNE(outlier_data, perplexity=4, output_dim=3)
        assert tsne.config.perplexity == 4
        assert tsne.config.output_dim == 3

    def test_unknown_override(self, outlier_data):
        with pytest.raises(ConfigurationError):
            TSNE(outlier_data, epsilon=10)

    @pytest.mark.parametrize("output_dim", [0, -1])
    def test_non_positive_output_dim(self, outlier_data, output_dim):
        with pytest.raises(ConfigurationError):
            TSNE(outlier_data, output_dim=output_dim)

    def test_precomputed_must_be_square(self, outlier_data):
        with pytest.raises(DimensionError):
            TSNE(outlier_data, metric="precomputed")

    def test_input_is_copied_and_frozen(self, outlier_data):
        tsne = TSNE(outlier_data)
        outlier_data[0, 0] = 100.0
        assert tsne.X[0, 0] != 100.0
        with pytest.raises(ValueError):
            tsne.X[0, 0] = 1.0


class TestLifecycle:
    """Test cases for init, transform and generator."""

    def test_transform_before_init_raises(self, outlier_data):
        with pytest.raises(ConfigurationError):
            TSNE(outlier_data).transform(5)

    def test_generator_before_init_raises_on_first_pull(self, outlier_data):
        steps = TSNE(outlier_data).generator(5)
        with pytest.raises(ConfigurationError):
            next(steps)

    def test_affinities_are_a_fixed_distribution(self, outlier_data):
        tsne = TSNE(outlier_data, perplexity=3).init()
        P = tsne.affinities
        assert abs(P.sum() - 1.0) < 1e-9
        assert np.array_equal(P, P.T)
        with pytest.raises(ValueError):
            P[0, 1] = 0.5

        before = P.copy()
        tsne.transform(20)
        assert np.array_equal(tsne.affinities, before)

    def test_transform_counts_iterations(self, outlier_data):
        tsne = TSNE(outlier_data, perplexity=3).init()
        Y = tsne.transform(7)
        assert tsne.iteration == 7
        assert Y.shape == (10, 2)
        np.testing.assert_allclose(Y.mean(axis=0), 0.0, atol=1e-12)

    def test_generator_yields_live_embedding(self, outlier_data):
        tsne = TSNE(outlier_data, perplexity=3).init()
        snapshots = list(tsne.generator(5))
        assert len(snapshots) == 5
        # every pull hands out the same buffer
        assert all(snapshot is tsne.projection for snapshot in snapshots)
        assert tsne.iteration == 5

    def test_generator_steps_lazily(self, outlier_data):
        tsne = TSNE(outlier_data, perplexity=3).init()
        steps = tsne.generator(3)
        assert tsne.iteration == 0
        next(steps)
        assert tsne.iteration == 1

    def test_generator_matches_transform(self, outlier_data):
        steps = TSNE(outlier_data, perplexity=3).init().generator(5)
        copies = [snapshot.copy() for snapshot in steps]
        assert len(copies) == 5

        expected = TSNE(outlier_data, perplexity=3).init().transform(5)
        np.testing.assert_array_equal(copies[-1], expected)
        assert not np.array_equal(copies[0], copies[-1])

    def test_reinit_restarts_the_run(self, outlier_data):
        tsne = TSNE(outlier_data, perplexity=3).init()
        first = tsne.transform(10).copy()
        tsne.init()
        assert tsne.iteration == 0
        np.testing.assert_array_equal(tsne.transform(10), first)


class TestDeterminism:
    """Test cases for reproducibility."""

    def test_same_seed_same_embedding(self, outlier_data):
        a = TSNE(outlier_data, perplexity=3).fit_transform(100)
        b = TSNE(outlier_data, perplexity=3).fit_transform(100)
        np.testing.assert_allclose(a, b, atol=1e-10)

    def test_explicit_randomizer(self, outlier_data):
        a = TSNE(outlier_data, perplexity=3, seed=7).fit_transform(20)
        b = TSNE(outlier_data, perplexity=3, randomizer=Randomizer(7)).fit_transform(20)
        np.testing.assert_allclose(a, b, atol=1e-10)

    def test_reinit_keeps_explicit_randomizer_seed(self, outlier_data):
        expected = TSNE(outlier_data, perplexity=3, seed=7).fit_transform(20)
        tsne = TSNE(outlier_data, perplexity=3, randomizer=Randomizer(7))
        assert tsne.config.seed == 1212
        tsne.fit_transform(5)
        np.testing.assert_allclose(tsne.fit_transform(20), expected, atol=1e-10)

    def test_different_seed_different_embedding(self, outlier_data):
        a = TSNE(outlier_data, perplexity=3, seed=1).fit_transform(20)
        b = TSNE(outlier_data, perplexity=3, seed=2).fit_transform(20)
        assert not np.allclose(a, b)

    def test_precomputed_matches_metric(self, outlier_data):
        expected = TSNE(outlier_data, perplexity=3).fit_transform(50)
        delta = distance_matrix(outlier_data)
        result = TSNE(delta, perplexity=3, metric="precomputed").fit_transform(50)
        np.testing.assert_allclose(result, expected, atol=1e-10)


class TestScenarios:
    """End-to-end embedding behaviour."""

    def test_two_pairs_are_separated(self, two_pairs):
        config = TSNEConfig(perplexity=2, output_dim=2, seed=1212)
        Y = TSNE(two_pairs, config).init().transform(500)

        D = np.linalg.norm(Y[:, np.newaxis] - Y[np.newaxis, :], axis=-1)
        np.fill_diagonal(D, np.inf)
        # every point lands closest to its own partner
        assert list(D.argmin(axis=1)) == [1, 0, 3, 2]

        within = max(D[0, 1], D[2, 3])
        between = min(D[i, j] for i in (0, 1) for j in (2, 3))
        assert between >= 2 * within

    def test_blobs_are_separated(self, blobs):
        X, labels = blobs
        Y = TSNE(X, perplexity=5).fit_transform(500)
        labels = np.array(labels)
        centroids = {name: Y[labels == name].mean(axis=0) for name in "abc"}
        spread = max(np.linalg.norm(Y[labels == name] - centroids[name], axis=1).mean() for name in "abc")
        gaps = [np.linalg.norm(centroids[a] - centroids[b]) for a, b in (("a", "b"), ("a", "c"), ("b", "c"))]
        assert min(gaps) > 2 * spread
