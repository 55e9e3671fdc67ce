"""
Polarization Stream Processing Engine - Spectral Tests

Unit tests for window tables and the short-time spectrum.
"""

import pytest
import numpy as np

from polstream.core.errors import SpectralConfigInvalid
from polstream.dsp.spectral import ShortTimeSpectrum, stft_iteration
from polstream.dsp.windows import WindowGenerator, get_window


class TestWindowGenerator:
    """Tests for WindowGenerator."""

    def test_hann_symmetric_formula(self):
        """Test Hann uses the n - 1 denominator."""
        n = 8
        k = np.arange(n)
        expected = 0.5 * (1 - np.cos(2 * np.pi * k / (n - 1)))
        np.testing.assert_allclose(get_window("hann", n), expected)

    def test_hann_endpoints(self):
        """Test symmetric Hann starts and ends at zero."""
        w = get_window("hann", 16)
        assert w[0] == pytest.approx(0.0)
        assert w[-1] == pytest.approx(0.0)

    @pytest.mark.parametrize("window_type", ["hann", "hamming", "blackman"])
    def test_matches_numpy(self, window_type):
        """Test tables agree with numpy's symmetric windows."""
        reference = {"hann": np.hanning, "hamming": np.hamming, "blackman": np.blackman}
        np.testing.assert_allclose(
            get_window(window_type, 33), reference[window_type](33), atol=1e-12
        )

    def test_single_point_window(self):
        """Test size 1 is a single unit tap."""
        np.testing.assert_array_equal(get_window("hann", 1), [1.0])

    def test_cached_read_only(self):
        """Test the cache returns the same read-only array."""
        gen = WindowGenerator()
        w1 = gen.get_window("hann", 64)
        w2 = gen.get_window("hann", 64)

        assert w1 is w2
        with pytest.raises(ValueError):
            w1[0] = 1.0

    def test_unknown_type(self):
        """Test unknown window names are rejected."""
        with pytest.raises(ValueError):
            WindowGenerator().get_window("kaiser", 8)


class TestStftIteration:
    """Tests for a single transform."""

    def test_matches_rfft_power(self):
        """Test power equals |rfft(x * w)|^2."""
        rng = np.random.default_rng(3)
        x = rng.normal(size=16)
        w = get_window("hann", 16)

        expected = np.abs(np.fft.rfft(x * w)) ** 2
        np.testing.assert_allclose(stft_iteration(x, w), expected)

    def test_output_length(self):
        """Test floor(n/2) + 1 bins for odd and even n."""
        assert stft_iteration(np.ones(9), np.ones(9)).shape == (5,)
        assert stft_iteration(np.ones(8), np.ones(8)).shape == (5,)


class TestShortTimeSpectrum:
    """Tests for ShortTimeSpectrum scheduling and output."""

    def test_window_zero_rejected(self):
        """Test a zero window fails construction."""
        with pytest.raises(SpectralConfigInvalid, match="Window size can not be 0"):
            ShortTimeSpectrum(window_size=0, hop_size=2)

    def test_hop_zero_rejected(self):
        """Test a zero hop fails construction."""
        with pytest.raises(SpectralConfigInvalid):
            ShortTimeSpectrum(window_size=4, hop_size=0)

    def test_unknown_window_rejected(self):
        """Test unknown window types fail construction."""
        with pytest.raises(SpectralConfigInvalid):
            ShortTimeSpectrum(window_size=4, hop_size=2, window_type="kaiser")

    def test_emission_schedule(self):
        """Test window 4 / hop 2: nothing before the window fills, then one per two samples."""
        stft = ShortTimeSpectrum(window_size=4, hop_size=2)
        emitted = [stft.step(float(i)) is not None for i in range(12)]

        assert emitted[:4] == [False] * 4
        assert emitted[4:] == [True, False] * 4
        assert stft.frames_emitted == 4
        assert stft.samples_seen == 12

    def test_spectrum_uses_latest_window(self):
        """Test an emitted spectrum covers the newest window_size samples."""
        stft = ShortTimeSpectrum(window_size=4, hop_size=2)
        values = [0.3, -1.2, 2.0, 0.7, 1.1]
        outputs = [stft.step(v) for v in values]

        expected = stft_iteration(np.array(values[-4:]), get_window("hann", 4))
        np.testing.assert_allclose(outputs[-1], expected)
        assert outputs[-1].shape == (stft.num_bins,)

    def test_tone_peak_bin(self, sine_signal, sampling_hz):
        """Test a tone lands in the expected frequency bin."""
        stft = ShortTimeSpectrum(window_size=256, hop_size=64, sample_rate_hz=sampling_hz)
        frames = [p for p in map(stft.step, sine_signal(1024, 200.0)) if p is not None]

        peak_hz = stft.freq_axis[np.argmax(frames[-1])]
        assert abs(peak_hz - 200.0) <= sampling_hz / 256

    def test_freq_axis_requires_rate(self):
        """Test freq_axis needs a sample rate."""
        with pytest.raises(RuntimeError):
            ShortTimeSpectrum(window_size=8, hop_size=4).freq_axis

    def test_reset(self):
        """Test reset restarts the schedule."""
        stft = ShortTimeSpectrum(window_size=2, hop_size=1)
        for v in range(5):
            stft.step(v)
        stft.reset()

        assert stft.step(1.0) is None
        assert stft.frames_emitted == 0
