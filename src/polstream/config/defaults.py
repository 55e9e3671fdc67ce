"""
Centralized Configuration Defaults

Contains all default values and magic numbers used throughout the codebase.
Import these constants instead of hardcoding values.

Usage:
    from polstream.config.defaults import (
        STOKES_PORT,
        OJA_LEARNING_RATE,
        FILTER_ORDER,
    )
"""

import os

# =========================================================================
# Network Endpoints
# =========================================================================
STOKES_HOST = os.getenv("POLSTREAM_STOKES_HOST", "127.0.0.1")
STOKES_PORT = 5000  # PM1000 streamer-service raw Stokes datagrams
AUDIO_PORT = 5001  # Visualizer audio listener
VISUALIZER_IP = os.getenv("POLSTREAM_VISUALIZER_IP", "127.0.0.1")

# =========================================================================
# Timeouts
# =========================================================================
RECV_TIMEOUT_SECONDS = 0.1
POLL_INTERVAL_SECONDS = 0.1
JOIN_TIMEOUT_SECONDS = 2.0

# =========================================================================
# Online PCA (Oja's rule)
# =========================================================================
OJA_LEARNING_RATE = 0.01

# =========================================================================
# Highpass Filter
# =========================================================================
FILTER_ORDER = 4
CUTOFF_FREQ_HZ = 20.0
SAMPLING_FREQ_HZ = 1525.88  # PM1000 Stokes rate

# =========================================================================
# Short-Time Spectral Analysis
# =========================================================================
DEFAULT_WINDOW_SIZE = 256
DEFAULT_HOP_SIZE = 64
DEFAULT_WINDOW_TYPE = "hann"

# =========================================================================
# Egress Framing
# =========================================================================
EGRESS_HEADER_SIZE = 10  # u32 seq + u32 rate + u16 block size
MAX_BLOCK_SIZE = 0xFFFF  # u16 block size field
MAX_UDP_PAYLOAD = 65507  # IPv4 UDP datagram payload limit
MAX_DATAGRAM_SAMPLES = (MAX_UDP_PAYLOAD - EGRESS_HEADER_SIZE) // 4  # 16374 float32 values
DEFAULT_BLOCK_SIZE = 64

# =========================================================================
# Logging
# =========================================================================
DEFAULT_LOG_LEVEL = "INFO"
STATS_INTERVAL_SECONDS = 5.0

# =========================================================================
# Version
# =========================================================================
ENGINE_VERSION = "0.3.0"
