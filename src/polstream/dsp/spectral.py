"""
Short-Time Spectral Analysis

Streaming STFT over an unbounded scalar stream: keeps the latest
``window_size`` samples and emits a power spectrum every ``hop_size`` samples
once the window is full.
"""

from __future__ import annotations

from collections import deque

import numpy as np

from polstream.config import defaults
from polstream.core.errors import SpectralConfigInvalid
from polstream.dsp.windows import WINDOW_TYPES, get_window


def stft_iteration(x: np.ndarray, window: np.ndarray) -> np.ndarray:
    """
    Compute one windowed power spectrum.

    Args:
        x: Real samples, oldest first.
        window: Window of the same length.

    Returns:
        Squared magnitude of the real DFT, length ``len(x) // 2 + 1``.
    """
    spectrum = np.fft.rfft(np.asarray(x, dtype=np.float64) * window)
    return spectrum.real**2 + spectrum.imag**2


class ShortTimeSpectrum:
    """
    Lazily evaluated STFT producer.

    ``step`` never blocks: it returns a spectrum on hop indices with a full
    window and ``None`` otherwise. The sample index starts at 0, so with
    ``window_size=4, hop_size=2`` the first spectrum comes out on the fifth
    sample and then every second sample.
    """

    def __init__(
        self,
        window_size: int = defaults.DEFAULT_WINDOW_SIZE,
        hop_size: int = defaults.DEFAULT_HOP_SIZE,
        window_type: str = defaults.DEFAULT_WINDOW_TYPE,
        sample_rate_hz: float | None = None,
    ):
        """
        Initialize the spectral stage.

        Args:
            window_size: Samples per transform (> 0).
            hop_size: Samples between transforms (> 0).
            window_type: Taper applied before the transform.
            sample_rate_hz: Optional rate used for ``freq_axis``.

        Raises:
            SpectralConfigInvalid: On a zero window or hop, or unknown window type.
        """
        if window_size <= 0:
            raise SpectralConfigInvalid(
                "Window size can not be 0.", window_size=window_size
            )
        if hop_size <= 0:
            raise SpectralConfigInvalid("Hop size can not be 0.", hop_size=hop_size)
        if window_type not in WINDOW_TYPES:
            raise SpectralConfigInvalid(
                f"Unknown window type: {window_type}", window_type=window_type
            )

        self._window_size = window_size
        self._hop_size = hop_size
        self._window = get_window(window_type, window_size)
        self._sample_rate_hz = sample_rate_hz

        self._buffer: deque[float] = deque(maxlen=window_size)
        self._index = 0
        self._frames = 0

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def hop_size(self) -> int:
        return self._hop_size

    @property
    def num_bins(self) -> int:
        return self._window_size // 2 + 1

    @property
    def samples_seen(self) -> int:
        return self._index

    @property
    def frames_emitted(self) -> int:
        return self._frames

    @property
    def freq_axis(self) -> np.ndarray:
        """Bin centre frequencies in Hz (requires ``sample_rate_hz``)."""
        if self._sample_rate_hz is None:
            raise RuntimeError("sample_rate_hz was not given")
        return np.fft.rfftfreq(self._window_size, d=1.0 / self._sample_rate_hz)

    def step(self, sample: float) -> np.ndarray | None:
        """
        Push one sample.

        Returns:
            Power spectrum on a hop index with a full window, else None.
        """
        i = self._index
        self._index += 1
        self._buffer.append(float(sample))

        if len(self._buffer) < self._window_size or i % self._hop_size != 0:
            return None

        self._frames += 1
        return stft_iteration(np.fromiter(self._buffer, dtype=np.float64), self._window)

    def reset(self) -> None:
        self._buffer.clear()
        self._index = 0
        self._frames = 0
