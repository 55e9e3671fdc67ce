"""
Polarization Stream Processing Engine - Pipeline Module
"""

from polstream.pipeline.orchestrator import (
    OutcomeKind,
    PipelineState,
    StageOutcome,
    StokesPipeline,
)
from polstream.pipeline.stages import (
    EgressStage,
    FilterStage,
    IngestStage,
    PCAStage,
    Sample,
    SpectralStage,
    SpectrumFrame,
    StageMetrics,
    StokesVector,
)

__all__ = [
    "StokesPipeline",
    "PipelineState",
    "StageOutcome",
    "OutcomeKind",
    "IngestStage",
    "PCAStage",
    "FilterStage",
    "SpectralStage",
    "EgressStage",
    "StageMetrics",
    "Sample",
    "SpectrumFrame",
    "StokesVector",
]
