"""
Causal Butterworth Highpass

Coefficients are designed once with ``scipy.signal.butter`` (analog
prototype + bilinear transform, ``a[0] == 1``); samples are then filtered one
at a time with the direct-form difference equation

    y[n] = sum_k b[k] x[n-k] - sum_{k>=1} a[k] y[n-k]

so the output is available immediately, with the group delay any causal
filter has (no zero-phase correction).
"""

from __future__ import annotations

from collections import deque

import numpy as np
from scipy import signal as sps

from polstream.config import defaults
from polstream.core.errors import FilterDesignError


def design_butter_highpass(
    order: int, cutoff_hz: float, sampling_hz: float
) -> tuple[np.ndarray, np.ndarray]:
    """
    Design digital Butterworth highpass coefficients.

    Args:
        order: Filter order (>= 1).
        cutoff_hz: -3 dB cutoff frequency.
        sampling_hz: Sampling frequency.

    Returns:
        Tuple ``(b, a)``, each of length ``order + 1``, with ``a[0] == 1``.

    Raises:
        FilterDesignError: If ``order`` is 0 or the normalized cutoff is outside (0, 1).
    """
    if order < 1:
        raise FilterDesignError(f"Filter order must be >= 1, got {order}", order=order)
    if sampling_hz <= 0:
        raise FilterDesignError(
            f"Sampling frequency must be positive, got {sampling_hz}", sampling_hz=sampling_hz
        )

    nyquist_hz = sampling_hz / 2.0
    normalized_cutoff = cutoff_hz / nyquist_hz
    if not 0.0 < normalized_cutoff < 1.0:
        raise FilterDesignError(
            f"Normalized cutoff {normalized_cutoff:.4f} outside (0, 1) "
            f"(cutoff {cutoff_hz} Hz, sampling {sampling_hz} Hz)",
            cutoff_hz=cutoff_hz,
            sampling_hz=sampling_hz,
        )

    b, a = sps.butter(order, normalized_cutoff, btype="highpass", output="ba")
    b = np.asarray(b, dtype=np.float64)
    a = np.asarray(a, dtype=np.float64)
    return b / a[0], a / a[0]


class CausalHighpassFilter:
    """
    Streaming Butterworth highpass, one output per input.

    Histories are most-recent-first: ``x[n] .. x[n-order]`` and
    ``y[n-1] .. y[n-order]``. Both start empty, so the first output is
    ``b[0] * x[0]``.
    """

    def __init__(
        self,
        order: int = defaults.FILTER_ORDER,
        cutoff_hz: float = defaults.CUTOFF_FREQ_HZ,
        sampling_hz: float = defaults.SAMPLING_FREQ_HZ,
    ):
        self._b, self._a = design_butter_highpass(order, cutoff_hz, sampling_hz)
        self._order = order
        self._cutoff_hz = cutoff_hz
        self._sampling_hz = sampling_hz

        # Coefficients as plain floats keep the per-sample loop off numpy scalars
        self._b_taps = [float(v) for v in self._b]
        self._a_taps = [float(v) for v in self._a[1:]]

        self._x_hist: deque[float] = deque(maxlen=order + 1)
        self._y_hist: deque[float] = deque(maxlen=order)

    @property
    def b(self) -> np.ndarray:
        return self._b.copy()

    @property
    def a(self) -> np.ndarray:
        return self._a.copy()

    @property
    def order(self) -> int:
        return self._order

    @property
    def cutoff_hz(self) -> float:
        return self._cutoff_hz

    @property
    def sampling_hz(self) -> float:
        return self._sampling_hz

    def step(self, x: float) -> float:
        """Filter one sample."""
        self._x_hist.appendleft(float(x))

        feedforward = sum(bk * xk for bk, xk in zip(self._b_taps, self._x_hist))
        feedback = sum(ak * yk for ak, yk in zip(self._a_taps, self._y_hist))
        y = feedforward - feedback

        self._y_hist.appendleft(y)
        return y

    def reset(self) -> None:
        """Clear both histories."""
        self._x_hist.clear()
        self._y_hist.clear()
