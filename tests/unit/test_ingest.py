"""
Polarization Stream Processing Engine - Ingest Tests

Unit tests for the Stokes datagram codec and UDP listener.
"""

import socket
import struct

import pytest
import numpy as np

from polstream.core.errors import ErrorKind, IngestSchemaViolation, IngestTransientAbsence
from polstream.wire.ingest import (
    STOKES_DATAGRAM_SIZE,
    StokesSample,
    StokesUdpListener,
    decode_stokes_datagram,
    encode_stokes_datagram,
)


class TestStokesCodec:
    """Tests for decode_stokes_datagram / encode_stokes_datagram."""

    def test_datagram_size(self):
        """Test the fixed datagram size."""
        assert STOKES_DATAGRAM_SIZE == 24

    def test_decode_field_order(self):
        """Test fields decode as S0..S3, DOP, timestamp (little-endian)."""
        data = struct.pack("<5fI", 2.0, 1.0, 0.5, -0.5, 0.75, 123456)
        sample = decode_stokes_datagram(data)

        assert sample.s0 == 2.0
        assert sample.s1 == 1.0
        assert sample.s2 == 0.5
        assert sample.s3 == -0.5
        assert sample.dop == 0.75
        assert sample.timestamp == 123456

    def test_encode_matches_struct_layout(self):
        """Test the encoder produces the same bytes as the raw layout."""
        expected = struct.pack("<5fI", 1.0, 0.5, 0.25, -0.5, 0.97, 42)
        assert encode_stokes_datagram(1.0, 0.5, 0.25, -0.5, 0.97, 42) == expected

    def test_encode_wraps_timestamp(self):
        """Test timestamps wider than 32 bits are wrapped."""
        data = encode_stokes_datagram(1.0, 0.0, 0.0, 0.0, 1.0, 2**32 + 7)
        assert decode_stokes_datagram(data).timestamp == 7

    @pytest.mark.parametrize("size", [0, 23, 25, 48])
    def test_wrong_size_is_schema_violation(self, size):
        """Test any size other than 24 bytes is rejected."""
        with pytest.raises(IngestSchemaViolation) as exc_info:
            decode_stokes_datagram(b"\x00" * size)

        err = exc_info.value
        assert err.received == size
        assert err.expected == 24
        assert err.kind == ErrorKind.INGEST_SCHEMA_VIOLATION
        assert not err.retryable
        assert str(err) == f"Incorrect byte amount. Expected 24 bytes, received {size}."


class TestStokesSample:
    """Tests for StokesSample.normalized."""

    def test_normalized_divides_by_s0(self):
        """Test S1..S3 are divided by S0."""
        sample = StokesSample(timestamp=0, s0=2.0, s1=1.0, s2=0.5, s3=-2.0, dop=1.0)
        np.testing.assert_allclose(sample.normalized(), [0.5, 0.25, -1.0])

    def test_normalized_zero_intensity_is_not_finite(self):
        """Test a zero S0 yields non-finite components without raising."""
        sample = StokesSample(timestamp=0, s0=0.0, s1=1.0, s2=0.0, s3=-1.0, dop=1.0)
        vec = sample.normalized()

        assert vec.shape == (3,)
        assert np.isposinf(vec[0])
        assert np.isnan(vec[1])
        assert np.isneginf(vec[2])


@pytest.mark.network
class TestStokesUdpListener:
    """Tests for StokesUdpListener over loopback."""

    @pytest.fixture
    def listener(self):
        with StokesUdpListener("127.0.0.1", 0, timeout=0.05) as listener:
            yield listener

    @pytest.fixture
    def sender(self):
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        yield sock
        sock.close()

    def test_recv_decodes_datagram(self, listener, sender, stokes_datagram):
        """Test a 24-byte datagram is received and decoded."""
        sender.sendto(stokes_datagram(s0=4.0, s1=2.0, timestamp=99), listener.address)

        sample = listener.recv()
        assert sample.s0 == 4.0
        assert sample.s1 == 2.0
        assert sample.timestamp == 99
        assert listener.received == 1

    def test_recv_timeout_is_transient_absence(self, listener):
        """Test silence surfaces as a retryable absence."""
        with pytest.raises(IngestTransientAbsence) as exc_info:
            listener.recv()
        assert exc_info.value.retryable

    def test_oversized_datagram_is_not_truncated(self, listener, sender, stokes_datagram):
        """Test a 25-byte datagram is reported instead of silently truncated."""
        sender.sendto(stokes_datagram() + b"\x00", listener.address)

        with pytest.raises(IngestSchemaViolation) as exc_info:
            listener.recv()
        assert exc_info.value.received == 25


class TestDopIgnored:
    """Tests that the DOP field never influences downstream values."""

    REFERENCE = encode_stokes_datagram(15.2e-6, 3.1e-6, -7.4e-6, 11.0e-6, 0.97, 90210)

    @pytest.mark.parametrize("dop", [0.0, 0.5, 1.0, float("nan"), 1e30])
    def test_dop_does_not_change_vector(self, dop):
        """Test any DOP decodes to the same timestamp and normalized vector."""
        reference = decode_stokes_datagram(self.REFERENCE)
        sample = decode_stokes_datagram(
            encode_stokes_datagram(15.2e-6, 3.1e-6, -7.4e-6, 11.0e-6, dop, 90210)
        )

        assert sample.timestamp == reference.timestamp == 90210
        np.testing.assert_array_equal(sample.normalized(), reference.normalized())
