"""
Synthetic Stokes Source

Streams 24-byte Stokes datagrams to the ingest port so the full pipeline can
run without a polarimeter attached. The state of polarization traces a smooth
orbit on the Poincaré sphere (S0 around 15 uW, DOP 0.972) with an optional
small audio-band wobble riding on it.

Usage:
    polstream-simulate --rate 1525.88 --tone-hz 220
"""

from __future__ import annotations

import argparse
import logging
import math
import socket
import sys
import time
from collections.abc import Iterator

import numpy as np

from polstream.config import defaults
from polstream.core.cancellation import CancellationToken
from polstream.core.logging_config import setup_logging
from polstream.wire.ingest import encode_stokes_datagram

logger = logging.getLogger(__name__)


class StokesSignalGenerator:
    """
    Sample-by-sample Stokes vector generator.

    Each call to ``next_sample`` advances time by ``1 / sample_rate_hz`` and
    the u32 timestamp by one, wrapping at 2**32.
    """

    def __init__(
        self,
        sample_rate_hz: float = defaults.SAMPLING_FREQ_HZ,
        orbit_hz: float = 0.2,
        tone_hz: float | None = 220.0,
        tone_depth: float = 0.05,
        s0_watts: float = 15.2e-6,
        dop: float = 0.972,
        noise_std: float = 0.0,
        start_timestamp: int = 0,
        seed: int | None = None,
    ):
        if sample_rate_hz <= 0:
            raise ValueError(f"sample_rate_hz must be positive, got {sample_rate_hz}")
        if tone_hz is not None and not 0 < tone_hz < sample_rate_hz / 2:
            raise ValueError(f"tone_hz must be in (0, {sample_rate_hz / 2}), got {tone_hz}")

        self.sample_rate_hz = sample_rate_hz
        self.orbit_hz = orbit_hz
        self.tone_hz = tone_hz
        self.tone_depth = tone_depth
        self.s0_watts = s0_watts
        self.dop = dop
        self.noise_std = noise_std

        self._n = 0
        self._timestamp = start_timestamp & 0xFFFFFFFF
        self._rng = np.random.default_rng(seed)

    @property
    def samples_generated(self) -> int:
        return self._n

    def next_sample(self) -> tuple[float, float, float, float, float, int]:
        """Return ``(s0, s1, s2, s3, dop, timestamp)`` for the next instant."""
        t = self._n / self.sample_rate_hz
        angle = 2 * math.pi * self.orbit_hz * t

        a = angle
        if self.tone_hz is not None:
            a += self.tone_depth * math.sin(2 * math.pi * self.tone_hz * t)

        x = math.sin(a) * math.cos(angle * 0.3)
        y = math.cos(a) * math.sin(angle * 0.3)
        z = math.sin(a * 0.5) * math.cos(angle * 0.7)
        norm = math.sqrt(x * x + y * y + z * z) or 1.0

        # Slow +-2 uW intensity drift around the nominal power
        s0 = self.s0_watts * (1.0 + 0.13 * math.sin(angle * 0.1))
        polarized = s0 * self.dop
        s1, s2, s3 = (polarized * c / norm for c in (x, y, z))

        if self.noise_std > 0:
            s1, s2, s3 = np.array([s1, s2, s3]) + self._rng.normal(0.0, self.noise_std * s0, 3)

        timestamp = self._timestamp
        self._n += 1
        self._timestamp = (self._timestamp + 1) & 0xFFFFFFFF
        return s0, float(s1), float(s2), float(s3), self.dop, timestamp

    def datagrams(self, count: int | None = None) -> Iterator[bytes]:
        """Yield encoded datagrams, forever when ``count`` is None."""
        produced = 0
        while count is None or produced < count:
            yield encode_stokes_datagram(*self.next_sample())
            produced += 1


def send_stokes(
    host: str = "127.0.0.1",
    port: int = defaults.STOKES_PORT,
    rate_hz: float = defaults.SAMPLING_FREQ_HZ,
    count: int | None = None,
    generator: StokesSignalGenerator | None = None,
    token: CancellationToken | None = None,
) -> int:
    """
    Stream datagrams to ``host:port`` paced at ``rate_hz``.

    Returns:
        Number of datagrams sent.
    """
    if rate_hz <= 0:
        raise ValueError(f"rate_hz must be positive, got {rate_hz}")
    if generator is None:
        generator = StokesSignalGenerator(sample_rate_hz=rate_hz)

    sent = 0
    start = time.monotonic()
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        for datagram in generator.datagrams(count):
            if token is not None and token.cancelled:
                break

            # Sleep until this datagram is due
            delay = start + sent / rate_hz - time.monotonic()
            if delay > 0:
                time.sleep(delay)

            sock.sendto(datagram, (host, port))
            sent += 1

    logger.info(f"Sent {sent} Stokes datagrams to {host}:{port}")
    return sent


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send synthetic Stokes datagrams")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=defaults.STOKES_PORT)
    parser.add_argument("--rate", type=float, default=defaults.SAMPLING_FREQ_HZ, help="Samples/s")
    parser.add_argument("--count", type=int, default=None, help="Stop after N datagrams")
    parser.add_argument("--tone-hz", type=float, default=220.0, help="Wobble frequency (0 disables)")
    parser.add_argument("--orbit-hz", type=float, default=0.2)
    parser.add_argument("--noise", type=float, default=0.0, help="Relative noise std")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level)

    generator = StokesSignalGenerator(
        sample_rate_hz=args.rate,
        orbit_hz=args.orbit_hz,
        tone_hz=args.tone_hz or None,
        noise_std=args.noise,
    )

    logger.info(f"Streaming to {args.host}:{args.port} at {args.rate} samples/s")
    try:
        send_stokes(args.host, args.port, args.rate, args.count, generator)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
