#!/usr/bin/env python3
"""
Egress Monitor

Listens on the visualizer port, decodes every egress datagram and reports
sequence gaps and per-block statistics. Useful for checking a running
pipeline without the visualizer.

Usage:
    python scripts/monitor_audio.py --port 5001
"""

import argparse
import logging
import socket
import sys

import numpy as np

from polstream.config import defaults
from polstream.core.logging_config import setup_logging
from polstream.wire.egress import SequenceTracker, decode_audio_packet

logger = logging.getLogger("polstream.monitor")


def main() -> int:
    parser = argparse.ArgumentParser(description="Decode PolStream egress datagrams")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=defaults.AUDIO_PORT)
    parser.add_argument("--count", type=int, default=None, help="Stop after N datagrams")
    args = parser.parse_args()

    setup_logging(level="INFO")
    tracker = SequenceTracker()
    received = 0

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.bind((args.host, args.port))
        logger.info(f"Listening on {args.host}:{args.port}")

        try:
            while args.count is None or received < args.count:
                data, _ = sock.recvfrom(65535)
                try:
                    packet = decode_audio_packet(data)
                except ValueError as e:
                    logger.warning(f"Malformed datagram: {e}")
                    continue

                received += 1
                gap = tracker.observe(packet.sequence_nr)
                if gap is not None:
                    logger.warning(f"Sequence gap: expected {gap[0]}, got {gap[1]}")

                samples = packet.samples
                rms = float(np.sqrt(np.mean(samples.astype(np.float64) ** 2))) if samples.size else 0.0
                logger.info(
                    f"#{packet.sequence_nr} {samples.size} values @ {packet.sample_rate_hz} Hz, rms={rms:.4g}"
                )
        except KeyboardInterrupt:
            pass

    logger.info(f"Received {received} datagrams, {tracker.gaps} gaps")
    return 0


if __name__ == "__main__":
    sys.exit(main())
