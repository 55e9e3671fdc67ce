"""
Polarization Stream Processing Engine - Test Configuration

Pytest fixtures and configuration for testing.
"""

import pytest
import numpy as np

from polstream.wire.ingest import encode_stokes_datagram


@pytest.fixture
def sampling_hz():
    """Default sensor sampling rate for tests."""
    return 1525.88


@pytest.fixture
def sine_signal(sampling_hz):
    """Generate a real sine wave."""
    def _generate(num_samples, freq_hz, amplitude=1.0, offset=0.0):
        t = np.arange(num_samples) / sampling_hz
        return offset + amplitude * np.sin(2 * np.pi * freq_hz * t)
    return _generate


@pytest.fixture
def stokes_datagram():
    """Build a 24-byte Stokes datagram."""
    def _build(s0=1.0, s1=0.5, s2=0.25, s3=-0.5, dop=0.97, timestamp=0):
        return encode_stokes_datagram(s0, s1, s2, s3, dop, timestamp)
    return _build


@pytest.fixture
def stokes_stream(sine_signal):
    """Stokes samples whose S1 carries a tone around a fixed state of polarization."""
    def _generate(num_samples, freq_hz=100.0, depth=0.2, s0=2.0):
        tone = sine_signal(num_samples, freq_hz, amplitude=depth)
        return [
            (s0, s0 * (0.6 + v), s0 * 0.3, s0 * 0.1, 0.97, n)
            for n, v in enumerate(tone)
        ]
    return _generate


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "network: mark test as using loopback UDP sockets"
    )
