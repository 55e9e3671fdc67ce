"""
Polarization Stream Processing Engine - Core Module

Core components: error taxonomy, cancellation, inter-stage channels, logging.
"""

from polstream.core.cancellation import CancellationToken
from polstream.core.channel import Channel, ChannelClosed
from polstream.core.errors import (
    BlockSizeError,
    ChannelDisconnected,
    EgressIoFailure,
    ErrorKind,
    FilterConfigInvalid,
    FilterDesignError,
    IngestSchemaViolation,
    IngestTransientAbsence,
    PipelineError,
    SpectralConfigInvalid,
)

__all__ = [
    "CancellationToken",
    "Channel",
    "ChannelClosed",
    "ErrorKind",
    "PipelineError",
    "IngestSchemaViolation",
    "IngestTransientAbsence",
    "ChannelDisconnected",
    "FilterConfigInvalid",
    "FilterDesignError",
    "SpectralConfigInvalid",
    "EgressIoFailure",
    "BlockSizeError",
]
