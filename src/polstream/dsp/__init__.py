"""
Polarization Stream Processing Engine - DSP Module

Per-sample numeric stages: online PCA, causal highpass, short-time spectrum.
"""

from polstream.dsp.filters import CausalHighpassFilter, design_butter_highpass
from polstream.dsp.pca import OnlinePCA, ojas_rule
from polstream.dsp.spectral import ShortTimeSpectrum, stft_iteration
from polstream.dsp.windows import WindowGenerator, get_window

__all__ = [
    "OnlinePCA",
    "ojas_rule",
    "CausalHighpassFilter",
    "design_butter_highpass",
    "ShortTimeSpectrum",
    "stft_iteration",
    "WindowGenerator",
    "get_window",
]
