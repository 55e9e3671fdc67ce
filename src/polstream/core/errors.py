"""
Polarization Stream Processing Engine - Error Taxonomy

Every failure a stage can hit is a ``PipelineError`` subclass tagged with an
``ErrorKind`` and a ``retryable`` flag, so stage loops and the orchestrator can
tell an expected lull (no datagram yet) from a fatal condition without parsing
messages.

Usage:
    try:
        sample = listener.recv()
    except IngestTransientAbsence:
        continue  # retryable, absorbed locally
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Error categories across all stages."""

    INGEST_SCHEMA_VIOLATION = "ingest_schema_violation"
    INGEST_TRANSIENT_ABSENCE = "ingest_transient_absence"
    CHANNEL_DISCONNECTED = "channel_disconnected"
    FILTER_CONFIG_INVALID = "filter_config_invalid"
    SPECTRAL_CONFIG_INVALID = "spectral_config_invalid"
    EGRESS_IO_FAILURE = "egress_io_failure"
    BLOCK_SIZE_INVALID = "block_size_invalid"


class PipelineError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind
    retryable: bool = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        """Structured form for logging ``extra`` fields."""
        return {
            "error_kind": self.kind.value,
            "retryable": self.retryable,
            "error_message": self.message,
            **{k: v if isinstance(v, (str, int, float, bool)) or v is None else str(v)
               for k, v in self.context.items()},
        }


class IngestSchemaViolation(PipelineError):
    """Datagram size disagrees with the 24-byte Stokes layout. Fatal."""

    kind = ErrorKind.INGEST_SCHEMA_VIOLATION

    def __init__(self, received: int, expected: int):
        super().__init__(
            f"Incorrect byte amount. Expected {expected} bytes, received {received}.",
            received=received,
            expected=expected,
        )
        self.received = received
        self.expected = expected


class IngestTransientAbsence(PipelineError):
    """No datagram was ready before the socket timeout."""

    kind = ErrorKind.INGEST_TRANSIENT_ABSENCE
    retryable = True


class ChannelDisconnected(PipelineError):
    """The other end of an inter-stage channel is gone."""

    kind = ErrorKind.CHANNEL_DISCONNECTED


class FilterConfigInvalid(PipelineError):
    """Filter order or cutoff cannot produce a valid design."""

    kind = ErrorKind.FILTER_CONFIG_INVALID


FilterDesignError = FilterConfigInvalid


class SpectralConfigInvalid(PipelineError):
    """Window or hop size is unusable."""

    kind = ErrorKind.SPECTRAL_CONFIG_INVALID


class EgressIoFailure(PipelineError):
    """Socket send to the visualizer failed."""

    kind = ErrorKind.EGRESS_IO_FAILURE


class BlockSizeError(PipelineError, ValueError):
    """Block does not fit the 16-bit block-size header field."""

    kind = ErrorKind.BLOCK_SIZE_INVALID
