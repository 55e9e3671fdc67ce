"""
Polarization Stream Processing Engine - Online PCA Tests

Unit tests for Oja's rule and the OnlinePCA tracker.
"""

import pytest
import numpy as np

from polstream.dsp.pca import UNIFORM_WEIGHTS, OnlinePCA, ojas_rule


class TestOjasRule:
    """Tests for the in-place update."""

    def test_returns_projection_before_update(self):
        """Test the output is w . x computed with the old weights."""
        weights = UNIFORM_WEIGHTS.copy()
        x = np.array([1.0, 2.0, 3.0])

        y = ojas_rule(weights, x, 0.01)

        assert y == pytest.approx(6.0 / np.sqrt(3.0))

    def test_updates_in_place(self):
        """Test the caller's weight array is mutated."""
        weights = UNIFORM_WEIGHTS.copy()
        ojas_rule(weights, np.array([1.0, 0.0, 0.0]), 0.1)

        assert not np.allclose(weights, UNIFORM_WEIGHTS)
        assert weights[0] > weights[1]

    def test_unit_norm_preserved(self):
        """Test the weight norm stays 1 after every step for arbitrary inputs."""
        rng = np.random.default_rng(0)
        weights = UNIFORM_WEIGHTS.copy()

        for x in rng.normal(scale=5.0, size=(2000, 3)):
            ojas_rule(weights, x, 0.05)
            assert abs(np.linalg.norm(weights) - 1.0) < 1e-9


class TestOnlinePCA:
    """Tests for OnlinePCA."""

    def test_default_weights_uniform(self):
        """Test the tracker starts at (1/sqrt3, 1/sqrt3, 1/sqrt3)."""
        pca = OnlinePCA()
        np.testing.assert_allclose(pca.weights, np.full(3, 1.0 / np.sqrt(3.0)))
        assert pca.learning_rate == 0.01

    def test_initial_weights_normalized(self):
        """Test custom starting weights are scaled to unit norm."""
        pca = OnlinePCA(initial_weights=(3.0, 0.0, 4.0))
        np.testing.assert_allclose(pca.weights, [0.6, 0.0, 0.8])

    @pytest.mark.parametrize("weights", [(0.0, 0.0, 0.0), (1.0, 2.0), (np.nan, 1.0, 0.0)])
    def test_invalid_initial_weights(self, weights):
        """Test zero, wrong-shape and non-finite starts are rejected."""
        with pytest.raises(ValueError):
            OnlinePCA(initial_weights=weights)

    def test_invalid_learning_rate(self):
        """Test a non-positive learning rate is rejected."""
        with pytest.raises(ValueError):
            OnlinePCA(learning_rate=0.0)

    def test_weights_property_is_copy(self):
        """Test mutating the returned weights does not touch the tracker."""
        pca = OnlinePCA()
        w = pca.weights
        w[:] = 0.0
        assert np.linalg.norm(pca.weights) == pytest.approx(1.0)

    def test_converges_to_dominant_direction(self):
        """Test the weights align with the dominant axis of the input."""
        rng = np.random.default_rng(42)
        direction = np.array([0.2, -0.6, 0.77])
        direction /= np.linalg.norm(direction)

        pca = OnlinePCA(learning_rate=0.01)
        amplitudes = rng.normal(size=6000)
        noise = rng.normal(scale=0.05, size=(6000, 3))
        for a, n in zip(amplitudes, noise):
            pca.step(a * direction + n)

        assert abs(np.dot(pca.weights, direction)) > 0.99
        assert pca.steps == 6000

    def test_projection_tracks_signal(self):
        """Test that after convergence the output is the signed amplitude along the axis."""
        direction = np.array([1.0, 0.0, 0.0])
        pca = OnlinePCA(learning_rate=0.05, initial_weights=(1.0, 0.1, 0.1))

        for k in range(2000):
            pca.step(np.sin(k / 5.0) * direction)

        y = pca.step(0.5 * direction)
        assert abs(y) == pytest.approx(0.5, abs=1e-3)

    @pytest.mark.parametrize("bad", [np.nan, np.inf])
    def test_nonfinite_input_poisons_weights(self, bad):
        """Test one non-finite input leaves the weights and outputs NaN for good."""
        pca = OnlinePCA(learning_rate=0.01)
        pca.step(np.array([0.3, -0.2, 0.9]))

        with np.errstate(invalid="ignore"):
            pca.step(np.array([bad, bad, bad]))
            outputs = [pca.step(np.array([0.3, -0.2, 0.9])) for _ in range(50)]

        assert not np.any(np.isfinite(pca.weights))
        assert all(np.isnan(y) for y in outputs)
