"""
Polarization Stream Processing Engine - Configuration Schema

Pydantic models for all configuration options with validation rules.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from polstream.config import defaults


class IngestConfig(BaseModel):
    """Stokes UDP listener configuration."""

    host: str = defaults.STOKES_HOST
    port: int = Field(default=defaults.STOKES_PORT, ge=0, le=65535)
    recv_timeout_s: float = Field(default=defaults.RECV_TIMEOUT_SECONDS, gt=0, le=5.0)
    # What to do with samples whose S0 is zero: keep the non-finite vector or skip it
    zero_intensity_policy: Literal["propagate", "drop"] = "propagate"


class PCAConfig(BaseModel):
    """Online PCA (Oja's rule) configuration."""

    learning_rate: float = Field(default=defaults.OJA_LEARNING_RATE, gt=0, le=1.0)
    initial_weights: tuple[float, float, float] | None = None

    @field_validator("initial_weights")
    @classmethod
    def weights_nonzero(cls, v):
        if v is not None and all(w == 0 for w in v):
            raise ValueError("initial_weights must not be the zero vector")
        return v


class FilterConfig(BaseModel):
    """Causal Butterworth highpass configuration."""

    order: int = Field(default=defaults.FILTER_ORDER, ge=1, le=16)
    cutoff_hz: float = Field(default=defaults.CUTOFF_FREQ_HZ, gt=0)
    sampling_hz: float = Field(default=defaults.SAMPLING_FREQ_HZ, gt=0)

    @field_validator("sampling_hz")
    @classmethod
    def nyquist_above_cutoff(cls, v, info):
        if "cutoff_hz" in info.data and info.data["cutoff_hz"] >= v / 2:
            raise ValueError("cutoff_hz must be below sampling_hz / 2")
        return v


class SpectralConfig(BaseModel):
    """Short-time spectral analysis configuration."""

    window_size: int = Field(default=defaults.DEFAULT_WINDOW_SIZE, ge=1)
    hop_size: int = Field(default=defaults.DEFAULT_HOP_SIZE, ge=1)
    window_type: Literal["hann", "hamming", "blackman", "rectangular"] = "hann"

    @field_validator("window_size")
    @classmethod
    def spectrum_fits_block(cls, v):
        # A full spectrum must fit in one egress datagram
        bins = v // 2 + 1
        if bins > defaults.MAX_DATAGRAM_SAMPLES:
            raise ValueError(
                f"window_size too large: {bins} bins > {defaults.MAX_DATAGRAM_SAMPLES} per datagram"
            )
        return v


class EgressConfig(BaseModel):
    """Visualizer UDP sender configuration."""

    target_ip: str = defaults.VISUALIZER_IP
    port: int = Field(default=defaults.AUDIO_PORT, ge=1, le=65535)
    sample_rate_hz: int | None = Field(default=None, ge=1, le=0xFFFFFFFF)
    block_size: int = Field(default=defaults.DEFAULT_BLOCK_SIZE, ge=1, le=defaults.MAX_DATAGRAM_SAMPLES)
    payload: Literal["amplitude", "spectrum"] = "amplitude"


class PipelineConfig(BaseModel):
    """Stage wiring and scheduling configuration."""

    # 0 keeps inter-stage queues unbounded
    queue_maxsize: int = Field(default=0, ge=0, le=10_000_000)
    overflow_policy: Literal["block", "drop_oldest"] = "block"
    poll_interval_s: float = Field(default=defaults.POLL_INTERVAL_SECONDS, gt=0, le=5.0)
    join_timeout_s: float = Field(default=defaults.JOIN_TIMEOUT_SECONDS, gt=0, le=60.0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = defaults.DEFAULT_LOG_LEVEL
    log_file: str | None = None
    structured: bool = False
    stats_interval_s: float = Field(default=defaults.STATS_INTERVAL_SECONDS, gt=0)


class PolStreamConfig(BaseModel):
    """Root configuration for the Polarization Stream Processing Engine."""

    ingest: IngestConfig = Field(default_factory=IngestConfig)
    pca: PCAConfig = Field(default_factory=PCAConfig)
    filter: FilterConfig = Field(default_factory=FilterConfig)
    spectral: SpectralConfig = Field(default_factory=SpectralConfig)
    egress: EgressConfig = Field(default_factory=EgressConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def egress_sample_rate_hz(self) -> int:
        """Sample rate written into egress headers."""
        if self.egress.sample_rate_hz is not None:
            return self.egress.sample_rate_hz
        return max(1, round(self.filter.sampling_hz))

    @classmethod
    def from_yaml(cls, path: str) -> "PolStreamConfig":
        """Load configuration from YAML file."""
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: str) -> None:
        """Save configuration to YAML file."""
        import yaml

        with open(path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)


# Preset configurations
PRESET_DEFAULT = PolStreamConfig()

PRESET_LOW_LATENCY = PolStreamConfig(
    spectral=SpectralConfig(window_size=64, hop_size=16),
    egress=EgressConfig(block_size=16),
    pipeline=PipelineConfig(poll_interval_s=0.02),
)

PRESET_SPECTRUM_EGRESS = PolStreamConfig(
    spectral=SpectralConfig(window_size=512, hop_size=128),
    egress=EgressConfig(payload="spectrum"),
)

PRESETS = {
    "default": PRESET_DEFAULT,
    "low_latency": PRESET_LOW_LATENCY,
    "spectrum_egress": PRESET_SPECTRUM_EGRESS,
}
