"""
Polarization Stream Processing Engine - Simulator Tests

Unit tests for the synthetic Stokes source.
"""

import socket

import numpy as np
import pytest

from polstream.simulate import StokesSignalGenerator, send_stokes
from polstream.wire.ingest import decode_stokes_datagram


class TestStokesSignalGenerator:
    """Tests for StokesSignalGenerator."""

    def test_physical_ranges(self):
        """Test intensity, DOP and polarized fraction are consistent."""
        gen = StokesSignalGenerator(seed=0)
        for _ in range(500):
            s0, s1, s2, s3, dop, _ = gen.next_sample()
            assert 13e-6 < s0 < 18e-6
            assert dop == pytest.approx(0.972)
            assert np.sqrt(s1**2 + s2**2 + s3**2) == pytest.approx(s0 * dop)

    def test_timestamps_increment_and_wrap(self):
        """Test the u32 timestamp counts up and wraps."""
        gen = StokesSignalGenerator(start_timestamp=2**32 - 2)
        stamps = [gen.next_sample()[-1] for _ in range(4)]
        assert stamps == [2**32 - 2, 2**32 - 1, 0, 1]

    def test_datagrams_decode(self):
        """Test generated datagrams are valid 24-byte Stokes packets."""
        gen = StokesSignalGenerator()
        packets = list(gen.datagrams(5))

        assert len(packets) == 5
        assert [decode_stokes_datagram(p).timestamp for p in packets] == [0, 1, 2, 3, 4]

    def test_tone_must_be_below_nyquist(self):
        """Test an unrepresentable tone is rejected."""
        with pytest.raises(ValueError):
            StokesSignalGenerator(sample_rate_hz=1000.0, tone_hz=600.0)


@pytest.mark.network
class TestSendStokes:
    """Tests for send_stokes over loopback."""

    def test_sends_count(self):
        """Test the requested number of datagrams arrive."""
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as receiver:
            receiver.bind(("127.0.0.1", 0))
            receiver.settimeout(2.0)
            port = receiver.getsockname()[1]

            sent = send_stokes("127.0.0.1", port, rate_hz=10000.0, count=10)
            sizes = [len(receiver.recvfrom(65535)[0]) for _ in range(10)]

        assert sent == 10
        assert sizes == [24] * 10
