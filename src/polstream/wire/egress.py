"""
Audio Egress Codec

Sends processed amplitude blocks to the visualizer over UDP.

Frame format (little-endian), must stay byte-compatible with the visualizer:
- 10-byte header:
  - uint32 sequence_nr (4 bytes) - wraps at 2^32, used to detect dropped packets
  - uint32 sample_rate_hz (4 bytes)
  - uint16 block_size (2 bytes) - number of samples that follow
- float32 payload: block_size amplitude samples
"""

from __future__ import annotations

import logging
import socket
import struct
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from polstream.config import defaults
from polstream.core.errors import BlockSizeError, EgressIoFailure

logger = logging.getLogger(__name__)


HEADER_STRUCT = struct.Struct("<IIH")
HEADER_SIZE = HEADER_STRUCT.size  # 10
MAX_BLOCK_SIZE = defaults.MAX_BLOCK_SIZE

_SEQUENCE_MODULUS = 1 << 32


def pack_audio_header(sequence_nr: int, sample_rate_hz: int, block_size: int) -> bytes:
    """
    Pack 10-byte audio frame header.

    Args:
        sequence_nr: Frame sequence number.
        sample_rate_hz: Sample rate of the payload.
        block_size: Number of float32 samples in the payload.

    Returns:
        10-byte header as bytes.

    Raises:
        BlockSizeError: If ``block_size`` does not fit in 16 bits.
    """
    if not 0 <= block_size <= MAX_BLOCK_SIZE:
        raise BlockSizeError(
            f"Block of {block_size} samples exceeds {MAX_BLOCK_SIZE}", block_size=block_size
        )
    return HEADER_STRUCT.pack(sequence_nr % _SEQUENCE_MODULUS, sample_rate_hz, block_size)


def pack_audio_frame(
    sequence_nr: int, sample_rate_hz: int, samples: Sequence[float] | np.ndarray
) -> bytes:
    """
    Pack complete audio frame (header + payload).

    Args:
        sequence_nr: Frame sequence number.
        sample_rate_hz: Sample rate of the payload.
        samples: Amplitude samples, converted to little-endian float32.

    Returns:
        Complete frame as bytes.
    """
    payload = np.asarray(samples, dtype="<f4").ravel()
    return pack_audio_header(sequence_nr, sample_rate_hz, payload.size) + payload.tobytes()


@dataclass(frozen=True)
class AudioPacket:
    """Decoded audio frame, as the visualizer sees it."""

    sequence_nr: int
    sample_rate_hz: int
    samples: np.ndarray


def decode_audio_packet(data: bytes) -> AudioPacket:
    """
    Decode an audio frame.

    Raises:
        ValueError: If the datagram is shorter than its header or declared payload.
    """
    if len(data) < HEADER_SIZE:
        raise ValueError(f"Audio frame too small: {len(data)} bytes (expected >= {HEADER_SIZE})")

    sequence_nr, sample_rate_hz, block_size = HEADER_STRUCT.unpack_from(data)
    expected = HEADER_SIZE + 4 * block_size
    if len(data) < expected:
        raise ValueError(f"Audio frame truncated: {len(data)} bytes, header declares {expected}")

    samples = np.frombuffer(data, dtype="<f4", count=block_size, offset=HEADER_SIZE)
    return AudioPacket(sequence_nr, sample_rate_hz, samples.astype(np.float32))


class SequenceTracker:
    """
    Receiver-side gap detector for sequence-numbered frames.

    ``observe`` returns ``(expected, received)`` when a frame is not the
    successor of the previous one, ``None`` otherwise.
    """

    def __init__(self):
        self._last: int | None = None
        self.gaps = 0

    def observe(self, sequence_nr: int) -> tuple[int, int] | None:
        gap = None
        if self._last is not None:
            expected = (self._last + 1) % _SEQUENCE_MODULUS
            if sequence_nr != expected:
                self.gaps += 1
                gap = (expected, sequence_nr)
        self._last = sequence_nr
        return gap


class AudioUdpSender:
    """
    Sends amplitude blocks to the visualizer, one datagram per block.

    Usage:
        sender = AudioUdpSender("127.0.0.1", sample_rate_hz=16000)
        sender.send_block(samples)
    """

    def __init__(
        self,
        target_ip: str,
        sample_rate_hz: int,
        port: int = defaults.AUDIO_PORT,
    ):
        """
        Create a sender bound to an ephemeral local port.

        Args:
            target_ip: IP of the machine running the visualizer.
            sample_rate_hz: Value written into every header.
            port: Visualizer UDP port.
        """
        if not 0 <= sample_rate_hz <= 0xFFFFFFFF:
            raise ValueError(f"sample_rate_hz out of u32 range: {sample_rate_hz}")

        self._target = (target_ip, port)
        self._sample_rate_hz = int(sample_rate_hz)
        self._sequence_nr = 0
        self._bytes_sent = 0
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self._socket.bind(("0.0.0.0", 0))  # OS picks an ephemeral source port

    @property
    def sequence_nr(self) -> int:
        """Sequence number the next frame will carry."""
        return self._sequence_nr

    @property
    def sample_rate_hz(self) -> int:
        return self._sample_rate_hz

    @property
    def target(self) -> tuple[str, int]:
        return self._target

    @property
    def bytes_sent(self) -> int:
        return self._bytes_sent

    def serialize(self, samples: Sequence[float] | np.ndarray) -> bytes:
        """Serialize ``samples`` with the current sequence number."""
        return pack_audio_frame(self._sequence_nr, self._sample_rate_hz, samples)

    def send_block(self, samples: Sequence[float] | np.ndarray) -> int:
        """
        Serialize ``samples`` and send one UDP datagram.

        The sequence number advances only after a successful send.

        Returns:
            Number of bytes sent.

        Raises:
            BlockSizeError: If more than 65535 samples are given.
            EgressIoFailure: If the socket send fails.
        """
        payload = self.serialize(samples)
        try:
            sent = self._socket.sendto(payload, self._target)
        except OSError as e:
            raise EgressIoFailure(
                f"UDP send to {self._target[0]}:{self._target[1]} failed: {e}",
                target=f"{self._target[0]}:{self._target[1]}",
                sequence_nr=self._sequence_nr,
            ) from e

        self._sequence_nr = (self._sequence_nr + 1) % _SEQUENCE_MODULUS
        self._bytes_sent += sent
        return sent

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> "AudioUdpSender":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
