"""
Polarization Stream Processing Engine - Configuration Module
"""

from polstream.config.schema import (
    PRESETS,
    EgressConfig,
    FilterConfig,
    IngestConfig,
    LoggingConfig,
    PCAConfig,
    PipelineConfig,
    PolStreamConfig,
    SpectralConfig,
)

__all__ = [
    "PolStreamConfig",
    "IngestConfig",
    "PCAConfig",
    "FilterConfig",
    "SpectralConfig",
    "EgressConfig",
    "PipelineConfig",
    "LoggingConfig",
    "PRESETS",
]
