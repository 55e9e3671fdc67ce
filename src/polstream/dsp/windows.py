"""
Window Function Library

Symmetric window tables for short-time spectral analysis, with caching.
"""

from __future__ import annotations

import numpy as np

WINDOW_TYPES = ("rectangular", "hann", "hamming", "blackman")


class WindowGenerator:
    """
    Window function generator with caching.

    All windows are symmetric (denominator ``n - 1``), matching the Hann
    definition ``w[k] = 0.5 * (1 - cos(2*pi*k / (n - 1)))``.

    Supported window types:
    - hann: General purpose, good frequency resolution
    - hamming: Similar to Hann, slightly different sidelobes
    - blackman: Low sidelobes, wider main lobe
    - rectangular: No windowing (maximum frequency resolution)
    """

    def __init__(self, cache_enabled: bool = True):
        self._cache_enabled = cache_enabled
        self._cache: dict[tuple[str, int], np.ndarray] = {}

    def get_window(self, window_type: str, size: int) -> np.ndarray:
        """
        Get a window function, using cache if available.

        Args:
            window_type: Type of window (hann, hamming, blackman, rectangular).
            size: Window length in samples.

        Returns:
            Read-only float64 array of length ``size``.
        """
        cache_key = (window_type, size)
        if self._cache_enabled and cache_key in self._cache:
            return self._cache[cache_key]

        window = self._generate_window(window_type, size)
        window.setflags(write=False)

        if self._cache_enabled:
            self._cache[cache_key] = window

        return window

    def _generate_window(self, window_type: str, size: int) -> np.ndarray:
        if size < 1:
            raise ValueError(f"Window size must be >= 1, got {size}")
        if window_type not in WINDOW_TYPES:
            raise ValueError(f"Unknown window type: {window_type}")

        # A single-point window has no shape to taper
        if window_type == "rectangular" or size == 1:
            return np.ones(size, dtype=np.float64)

        phase = 2 * np.pi * np.arange(size, dtype=np.float64) / (size - 1)

        if window_type == "hann":
            return 0.5 * (1 - np.cos(phase))

        elif window_type == "hamming":
            return 0.54 - 0.46 * np.cos(phase)

        else:  # blackman
            return 0.42 - 0.5 * np.cos(phase) + 0.08 * np.cos(2 * phase)

    def clear_cache(self) -> None:
        self._cache.clear()


# Module-level default generator
_default_generator = None


def get_window(window_type: str, size: int) -> np.ndarray:
    """Get a window function using the default generator."""
    global _default_generator
    if _default_generator is None:
        _default_generator = WindowGenerator()
    return _default_generator.get_window(window_type, size)
