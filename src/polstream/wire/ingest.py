"""
Stokes Ingest Codec

Receives raw Stokes datagrams from the PM1000 streamer service.

Datagram format (24 bytes, little-endian):
- float32 S0 (4 bytes) - total intensity
- float32 S1 (4 bytes)
- float32 S2 (4 bytes)
- float32 S3 (4 bytes)
- float32 DOP (4 bytes) - degree of polarization, decoded but not forwarded
- uint32 timestamp (4 bytes)

Any other datagram size means the two ends disagree on the schema and is
reported as ``IngestSchemaViolation``.
"""

from __future__ import annotations

import logging
import socket
import struct
from dataclasses import dataclass

import numpy as np

from polstream.config import defaults
from polstream.core.errors import IngestSchemaViolation, IngestTransientAbsence

logger = logging.getLogger(__name__)


STOKES_STRUCT = struct.Struct("<5fI")
STOKES_DATAGRAM_SIZE = STOKES_STRUCT.size  # 24

# Large enough that oversized datagrams are seen whole instead of truncated
_RECV_BUFFER_SIZE = 65535


@dataclass(frozen=True, slots=True)
class StokesSample:
    """One decoded Stokes measurement (f32 fields widened to float)."""

    timestamp: int
    s0: float
    s1: float
    s2: float
    s3: float
    dop: float

    def normalized(self) -> np.ndarray:
        """
        Return ``(S1/S0, S2/S0, S3/S0)`` as a float64 vector.

        A zero S0 yields non-finite components; they are returned as-is.
        """
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.array([self.s1, self.s2, self.s3], dtype=np.float64) / np.float64(self.s0)


def decode_stokes_datagram(data: bytes) -> StokesSample:
    """
    Decode one 24-byte Stokes datagram.

    Args:
        data: Raw datagram payload.

    Returns:
        Decoded sample.

    Raises:
        IngestSchemaViolation: If the payload is not exactly 24 bytes.
    """
    if len(data) != STOKES_DATAGRAM_SIZE:
        raise IngestSchemaViolation(received=len(data), expected=STOKES_DATAGRAM_SIZE)

    s0, s1, s2, s3, dop, timestamp = STOKES_STRUCT.unpack(data)
    return StokesSample(timestamp=timestamp, s0=s0, s1=s1, s2=s2, s3=s3, dop=dop)


def encode_stokes_datagram(
    s0: float, s1: float, s2: float, s3: float, dop: float, timestamp: int
) -> bytes:
    """
    Pack one Stokes datagram in the streamer-service raw format.

    Args:
        s0: Total intensity.
        s1: Stokes S1.
        s2: Stokes S2.
        s3: Stokes S3.
        dop: Degree of polarization.
        timestamp: Sensor timestamp (wrapped to 32 bits).

    Returns:
        24-byte datagram.
    """
    return STOKES_STRUCT.pack(
        float(s0), float(s1), float(s2), float(s3), float(dop), int(timestamp) & 0xFFFFFFFF
    )


class StokesUdpListener:
    """
    UDP listener for the raw Stokes stream.

    The socket carries a short timeout so that a caller polling ``recv`` in a
    loop regains control regularly even when the sensor is silent.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = defaults.STOKES_PORT,
        timeout: float = defaults.RECV_TIMEOUT_SECONDS,
    ):
        """
        Bind the listener.

        Args:
            host: Local address to bind.
            port: UDP port (0 picks an ephemeral port).
            timeout: Seconds each ``recv`` waits before reporting absence.
        """
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self._socket.bind((host, port))
        except OSError:
            self._socket.close()
            raise
        self._socket.settimeout(timeout)
        self._address: tuple[str, int] = self._socket.getsockname()
        self._received = 0
        logger.info(f"Stokes listener bound to {self._address[0]}:{self._address[1]}")

    @property
    def address(self) -> tuple[str, int]:
        """Bound ``(host, port)``."""
        return self._address

    @property
    def received(self) -> int:
        """Number of datagrams decoded so far."""
        return self._received

    def recv(self) -> StokesSample:
        """
        Receive and decode the next datagram.

        Raises:
            IngestTransientAbsence: No datagram arrived before the timeout. Retry.
            IngestSchemaViolation: The datagram was not 24 bytes. Fatal.
        """
        try:
            data, _src = self._socket.recvfrom(_RECV_BUFFER_SIZE)
        except (socket.timeout, BlockingIOError, InterruptedError) as e:
            raise IngestTransientAbsence("Didn't receive data.") from e

        sample = decode_stokes_datagram(data)
        self._received += 1
        return sample

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> "StokesUdpListener":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
