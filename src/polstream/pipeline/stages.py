"""
Polarization Stream Processing Engine - Pipeline Stages

One class per stage. Each stage owns its numeric state exclusively and talks
to its neighbours only through ``Channel`` objects:

    IngestStage -> PCAStage -> FilterStage -> SpectralStage -> EgressStage
"""

from __future__ import annotations

import logging
import queue
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np

from polstream.core.cancellation import CancellationToken
from polstream.core.channel import Channel, ChannelClosed
from polstream.core.errors import IngestTransientAbsence
from polstream.dsp.filters import CausalHighpassFilter
from polstream.dsp.pca import OnlinePCA
from polstream.dsp.spectral import ShortTimeSpectrum
from polstream.wire.ingest import StokesSample

logger = logging.getLogger(__name__)


# =============================================================================
# Stream Items
# =============================================================================


@dataclass(frozen=True, slots=True)
class StokesVector:
    """Normalized ``(S1/S0, S2/S0, S3/S0)`` with its sensor timestamp."""

    timestamp: int
    vector: np.ndarray


@dataclass(frozen=True, slots=True)
class Sample:
    """Scalar stream value with the timestamp of the Stokes sample it came from."""

    timestamp: int
    value: float


@dataclass(frozen=True)
class SpectrumFrame:
    """Power spectrum stamped with the newest sample in its window."""

    timestamp: int
    index: int
    power: np.ndarray


@dataclass
class StageMetrics:
    """Per-stage counters (single writer: the stage thread)."""

    items_in: int = 0
    items_out: int = 0
    dropped: int = 0

    def to_dict(self) -> dict:
        return {"items_in": self.items_in, "items_out": self.items_out, "dropped": self.dropped}


class StokesSource(Protocol):
    """
    Anything with the ``StokesUdpListener.recv`` contract.

    A finite source (a replayed capture, a test feed) raises ``ChannelClosed``
    once exhausted; the ingest stage then ends the stream cleanly.
    """

    def recv(self) -> StokesSample: ...


class BlockSink(Protocol):
    """Anything with the ``AudioUdpSender.send_block`` contract."""

    def send_block(self, samples: np.ndarray) -> int: ...


# =============================================================================
# Stage Base
# =============================================================================


class Stage(ABC):
    """
    Base class for a pipeline stage worker.

    ``run`` loops until the token is cancelled or the inbox is closed and
    drained, then closes the outbox so the end of stream reaches the next
    stage. Errors propagate out of ``run`` with the outbox left open; the
    orchestrator cancels the token before closing the channels, so downstream
    stages never mistake a failure for a clean end of stream.
    """

    name = "stage"

    def __init__(
        self,
        inbox: Channel | None,
        outbox: Channel | None,
        poll_interval: float = 0.1,
    ):
        self.inbox = inbox
        self.outbox = outbox
        self._poll_interval = poll_interval
        self.metrics = StageMetrics()

    def run(self, token: CancellationToken) -> None:
        logger.info(f"{self.name} stage started", extra={"stage": self.name})
        try:
            self._loop(token)
            if not token.cancelled:
                self.finish()
            if self.outbox is not None:
                self.outbox.close()
        finally:
            logger.info(
                f"{self.name} stage stopped",
                extra={"stage": self.name, **self.metrics.to_dict()},
            )

    def _loop(self, token: CancellationToken) -> None:
        while not token.cancelled:
            try:
                item = self.inbox.recv(timeout=self._poll_interval)
            except queue.Empty:
                continue
            except ChannelClosed:
                break

            self.metrics.items_in += 1
            self.process(item)

    def emit(self, item: Any) -> None:
        self.outbox.send(item)
        self.metrics.items_out += 1

    @abstractmethod
    def process(self, item: Any) -> None:
        """Handle one upstream item."""

    def finish(self) -> None:
        """Hook run after a clean end of stream."""


# =============================================================================
# Stages
# =============================================================================


class IngestStage(Stage):
    """Reads Stokes datagrams and forwards normalized vectors."""

    name = "ingest"

    def __init__(
        self,
        listener: StokesSource,
        outbox: Channel,
        zero_intensity_policy: str = "propagate",
    ):
        super().__init__(None, outbox)
        if zero_intensity_policy not in ("propagate", "drop"):
            raise ValueError(f"Unknown zero intensity policy: {zero_intensity_policy}")
        self._listener = listener
        self._drop_nonfinite = zero_intensity_policy == "drop"
        self._nonfinite = 0

    @property
    def nonfinite_count(self) -> int:
        return self._nonfinite

    def _loop(self, token: CancellationToken) -> None:
        while not token.cancelled:
            try:
                sample = self._listener.recv()
            except IngestTransientAbsence:
                continue
            except ChannelClosed:
                logger.info("Stokes source exhausted", extra={"stage": self.name})
                break

            self.metrics.items_in += 1
            self.process(sample)

    def process(self, sample: StokesSample) -> None:
        vector = sample.normalized()

        if not np.all(np.isfinite(vector)):
            self._nonfinite += 1
            if self._nonfinite == 1:
                logger.warning(
                    "Non-finite normalized Stokes vector (S0 near zero)"
                    + (
                        "; sample dropped"
                        if self._drop_nonfinite
                        else "; PCA weights become NaN and stay NaN for the rest of the run"
                    ),
                    extra={
                        "stage": self.name,
                        "sensor_timestamp": sample.timestamp,
                        "s0": sample.s0,
                        "policy": "drop" if self._drop_nonfinite else "propagate",
                    },
                )
            if self._drop_nonfinite:
                self.metrics.dropped += 1
                return

        self.emit(StokesVector(sample.timestamp, vector))


class PCAStage(Stage):
    """Projects each vector onto the tracked principal direction."""

    name = "pca"

    def __init__(self, pca: OnlinePCA, inbox: Channel, outbox: Channel, poll_interval: float = 0.1):
        super().__init__(inbox, outbox, poll_interval)
        self.pca = pca

    def process(self, item: StokesVector) -> None:
        self.emit(Sample(item.timestamp, self.pca.step(item.vector)))


class FilterStage(Stage):
    """Removes slow drift with the causal highpass."""

    name = "filter"

    def __init__(
        self,
        highpass: CausalHighpassFilter,
        inbox: Channel,
        outbox: Channel,
        poll_interval: float = 0.1,
    ):
        super().__init__(inbox, outbox, poll_interval)
        self.highpass = highpass

    def process(self, item: Sample) -> None:
        self.emit(Sample(item.timestamp, self.highpass.step(item.value)))


class SpectralStage(Stage):
    """
    Runs the short-time spectrum over the filtered stream.

    Frames always go to the spectrum callback when one is set. What travels
    on to egress depends on ``forward``: the amplitude samples themselves
    ("amplitude") or the spectrum frames ("spectrum").
    """

    name = "spectral"

    def __init__(
        self,
        spectrum: ShortTimeSpectrum,
        inbox: Channel,
        outbox: Channel,
        forward: str = "amplitude",
        poll_interval: float = 0.1,
    ):
        super().__init__(inbox, outbox, poll_interval)
        if forward not in ("amplitude", "spectrum"):
            raise ValueError(f"Unknown forward mode: {forward}")
        self.spectrum = spectrum
        self._forward_frames = forward == "spectrum"
        self._callback: Callable[[SpectrumFrame], None] | None = None

    def set_callback(self, callback: Callable[[SpectrumFrame], None] | None) -> None:
        self._callback = callback

    def process(self, item: Sample) -> None:
        power = self.spectrum.step(item.value)

        if power is not None:
            frame = SpectrumFrame(item.timestamp, self.spectrum.frames_emitted - 1, power)
            if self._callback is not None:
                try:
                    self._callback(frame)
                except Exception as e:
                    logger.error(f"Spectrum callback failed: {e}", extra={"stage": self.name})
            if self._forward_frames:
                self.emit(frame)

        if not self._forward_frames:
            self.emit(item)


class EgressStage(Stage):
    """
    Sends amplitude blocks or spectra to the visualizer.

    Amplitude samples are batched ``block_size`` per datagram; a partial
    block is flushed only on a clean end of stream.
    """

    name = "egress"

    def __init__(
        self,
        sender: BlockSink,
        inbox: Channel,
        block_size: int = 64,
        poll_interval: float = 0.1,
    ):
        super().__init__(inbox, None, poll_interval)
        if block_size < 1:
            raise ValueError("block_size must be >= 1")
        self._sender = sender
        self._block_size = block_size
        self._block: list[float] = []
        self.datagrams_sent = 0
        self.bytes_sent = 0

    def process(self, item: Sample | SpectrumFrame) -> None:
        if isinstance(item, SpectrumFrame):
            self._send(item.power.astype(np.float32))
            return

        self._block.append(item.value)
        if len(self._block) >= self._block_size:
            self._flush()

    def finish(self) -> None:
        if self._block:
            self._flush()

    def _flush(self) -> None:
        block = np.asarray(self._block, dtype=np.float32)
        self._block.clear()
        self._send(block)

    def _send(self, block: np.ndarray) -> None:
        self.bytes_sent += self._sender.send_block(block)
        self.datagrams_sent += 1
        self.metrics.items_out += block.size
