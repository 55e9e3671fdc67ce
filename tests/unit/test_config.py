"""
Polarization Stream Processing Engine - Configuration Tests

Unit tests for the pydantic configuration schema and presets.
"""

import pytest
from pydantic import ValidationError

from polstream.config import PRESETS, FilterConfig, PolStreamConfig, SpectralConfig
from polstream.config import defaults


class TestPolStreamConfig:
    """Tests for the root configuration."""

    def test_defaults(self):
        """Test defaults match the sensor constants."""
        config = PolStreamConfig()

        assert config.ingest.port == 5000
        assert config.egress.port == 5001
        assert config.pca.learning_rate == 0.01
        assert config.filter.order == 4
        assert config.filter.cutoff_hz == 20.0
        assert config.filter.sampling_hz == 1525.88
        assert config.spectral.window_type == "hann"
        assert config.ingest.zero_intensity_policy == "propagate"

    def test_egress_sample_rate_fallback(self):
        """Test the header rate defaults to the rounded sensor rate."""
        config = PolStreamConfig()
        assert config.egress_sample_rate_hz == 1526

        config = PolStreamConfig(egress={"sample_rate_hz": 16000})
        assert config.egress_sample_rate_hz == 16000

    def test_yaml_round_trip(self, tmp_path):
        """Test to_yaml / from_yaml preserve every field."""
        config = PolStreamConfig(
            spectral={"window_size": 128, "hop_size": 32},
            pca={"initial_weights": (1.0, 0.0, 0.0)},
        )
        path = tmp_path / "config.yaml"
        config.to_yaml(str(path))

        assert PolStreamConfig.from_yaml(str(path)) == config

    def test_empty_yaml(self, tmp_path):
        """Test an empty file yields defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert PolStreamConfig.from_yaml(str(path)) == PolStreamConfig()

    def test_partial_yaml(self, tmp_path):
        """Test unspecified sections keep their defaults."""
        path = tmp_path / "partial.yaml"
        path.write_text("egress:\n  target_ip: 10.0.0.5\n  block_size: 128\n")

        config = PolStreamConfig.from_yaml(str(path))
        assert config.egress.target_ip == "10.0.0.5"
        assert config.egress.block_size == 128
        assert config.filter.order == defaults.FILTER_ORDER


class TestValidation:
    """Tests for field validation."""

    def test_cutoff_above_nyquist(self):
        """Test a cutoff at or above Nyquist is rejected."""
        with pytest.raises(ValidationError):
            FilterConfig(cutoff_hz=800.0, sampling_hz=1525.88)

    def test_order_zero(self):
        """Test order 0 is rejected."""
        with pytest.raises(ValidationError):
            FilterConfig(order=0)

    def test_window_zero(self):
        """Test a zero spectral window is rejected."""
        with pytest.raises(ValidationError):
            SpectralConfig(window_size=0)

    def test_zero_initial_weights(self):
        """Test an all-zero PCA start is rejected."""
        with pytest.raises(ValidationError):
            PolStreamConfig(pca={"initial_weights": (0.0, 0.0, 0.0)})

    def test_block_size_limit(self):
        """Test egress blocks must fit the 16-bit header field."""
        with pytest.raises(ValidationError):
            PolStreamConfig(egress={"block_size": 70000})

    def test_unknown_payload(self):
        """Test the egress payload must be amplitude or spectrum."""
        with pytest.raises(ValidationError):
            PolStreamConfig(egress={"payload": "raw"})


class TestPresets:
    """Tests for configuration presets."""

    def test_preset_names(self):
        """Test all presets are present."""
        assert set(PRESETS) == {"default", "low_latency", "spectrum_egress"}

    def test_spectrum_preset(self):
        """Test the spectrum preset forwards spectra."""
        assert PRESETS["spectrum_egress"].egress.payload == "spectrum"

    def test_low_latency_preset(self):
        """Test the low latency preset shrinks the window and blocks."""
        preset = PRESETS["low_latency"]
        assert preset.spectral.window_size < PRESETS["default"].spectral.window_size
        assert preset.egress.block_size < PRESETS["default"].egress.block_size


class TestDatagramLimits:
    """Tests that egress sizes fit in one UDP datagram."""

    def test_max_samples_value(self):
        """Test the per-datagram sample limit derives from the UDP payload limit."""
        assert defaults.MAX_DATAGRAM_SAMPLES == (65507 - 10) // 4 == 16374

    def test_block_size_at_limit(self):
        """Test the largest block that fits one datagram is accepted."""
        config = PolStreamConfig(egress={"block_size": defaults.MAX_DATAGRAM_SAMPLES})
        assert config.egress.block_size == 16374

    @pytest.mark.parametrize("block_size", [16375, 20000, 65535])
    def test_block_size_over_datagram(self, block_size):
        """Test blocks too large for one datagram are rejected."""
        with pytest.raises(ValidationError):
            PolStreamConfig(egress={"block_size": block_size})

    def test_window_at_limit(self):
        """Test the largest window whose spectrum fits one datagram is accepted."""
        assert SpectralConfig(window_size=32747).window_size == 32747

    @pytest.mark.parametrize("window_size", [32748, 40000])
    def test_window_over_datagram(self, window_size):
        """Test windows whose spectrum would overflow a datagram are rejected."""
        with pytest.raises(ValidationError):
            SpectralConfig(window_size=window_size)
