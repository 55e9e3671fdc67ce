"""
Polarization Stream Processing Engine

Streams Stokes vectors from a polarimeter over UDP, tracks their principal
direction with Oja's rule, highpasses the projection, computes short-time
spectra and forwards the result to a visualizer over UDP.

Version: 0.3.0
"""

__version__ = "0.3.0"
__author__ = "PM1000 Signal Processing Team"

from polstream.config.schema import PolStreamConfig
