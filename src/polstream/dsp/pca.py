"""
Online PCA via Oja's Rule

Tracks the dominant principal direction of a stream of normalized Stokes
vectors one sample at a time. Memory is the weight vector only.
"""

from __future__ import annotations

import numpy as np

from polstream.config import defaults

UNIFORM_WEIGHTS = np.full(3, 1.0 / np.sqrt(3.0))


def ojas_rule(weights: np.ndarray, x: np.ndarray, learning_rate: float) -> float:
    """
    Apply one Oja update in place and return the projection.

    Args:
        weights: Unit weight vector, updated in place. Reuse it across calls.
        x: Input vector.
        learning_rate: Adaptation step size.

    Returns:
        The signed magnitude of ``x`` along the weights before the update.
    """
    y = float(np.dot(weights, x))

    weights += learning_rate * y * (x - y * weights)
    weights /= np.linalg.norm(weights)

    return y


class OnlinePCA:
    """
    Single-pass principal component tracker.

    Starting weights and learning rate are fixed configuration; on short
    streams different starts may settle on sign-flipped directions.

    A non-finite input (a zero-S0 sample passed through unchanged) makes the
    weights NaN, and no later finite input can bring them back: every
    projection after it is NaN until the tracker is rebuilt.
    """

    def __init__(
        self,
        learning_rate: float = defaults.OJA_LEARNING_RATE,
        initial_weights: np.ndarray | tuple[float, float, float] | None = None,
    ):
        """
        Initialize the tracker.

        Args:
            learning_rate: Oja step size.
            initial_weights: Starting direction (normalized here). None = uniform.
        """
        if learning_rate <= 0:
            raise ValueError("learning_rate must be positive")

        if initial_weights is None:
            weights = UNIFORM_WEIGHTS.copy()
        else:
            weights = np.asarray(initial_weights, dtype=np.float64).copy()
            if weights.shape != (3,):
                raise ValueError(f"initial_weights must have shape (3,), got {weights.shape}")
            norm = np.linalg.norm(weights)
            if norm == 0 or not np.isfinite(norm):
                raise ValueError("initial_weights must be a finite non-zero vector")
            weights /= norm

        self._learning_rate = learning_rate
        self._weights = weights
        self._steps = 0

    @property
    def weights(self) -> np.ndarray:
        """Copy of the current principal direction estimate."""
        return self._weights.copy()

    @property
    def learning_rate(self) -> float:
        return self._learning_rate

    @property
    def steps(self) -> int:
        return self._steps

    def step(self, x: np.ndarray) -> float:
        """Project ``x`` and adapt the weights."""
        self._steps += 1
        return ojas_rule(self._weights, np.asarray(x, dtype=np.float64), self._learning_rate)
