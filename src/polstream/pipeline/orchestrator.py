"""
Polarization Stream Processing Engine - Pipeline Orchestrator

Wires the five stages together with channels and runs each on its own thread.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from polstream.config import defaults
from polstream.config.schema import PRESETS, PolStreamConfig
from polstream.core.cancellation import CancellationToken
from polstream.core.channel import Channel
from polstream.core.errors import ChannelDisconnected, PipelineError
from polstream.core.logging_config import log_throughput, setup_logging
from polstream.dsp.filters import CausalHighpassFilter
from polstream.dsp.pca import OnlinePCA
from polstream.dsp.spectral import ShortTimeSpectrum
from polstream.pipeline.stages import (
    BlockSink,
    EgressStage,
    FilterStage,
    IngestStage,
    PCAStage,
    SpectralStage,
    SpectrumFrame,
    Stage,
    StokesSource,
)
from polstream.wire.egress import AudioUdpSender
from polstream.wire.ingest import StokesUdpListener

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """Pipeline operational states."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERROR = "error"


class OutcomeKind(Enum):
    """How a stage worker ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class StageOutcome:
    """Terminal result of one stage worker."""

    stage: str
    kind: OutcomeKind
    error: BaseException | None = None

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "outcome": self.kind.value,
            "error": str(self.error) if self.error is not None else None,
        }


class StokesPipeline:
    """
    Stokes stream processing pipeline.

    Stages, one thread each:
    - ingest: UDP datagrams -> normalized Stokes vectors
    - pca: vectors -> scalar projection (Oja's rule)
    - filter: causal Butterworth highpass
    - spectral: short-time power spectrum
    - egress: sequenced UDP datagrams to the visualizer

    A stage that fails cancels the shared token and closes every channel, so
    the other stages end within one poll interval.
    """

    def __init__(
        self,
        config: PolStreamConfig | None = None,
        config_path: str | None = None,
        listener: StokesSource | None = None,
        sender: BlockSink | None = None,
    ):
        """
        Create the pipeline (nothing is bound or started yet).

        Args:
            config: Configuration object. Defaults to ``PolStreamConfig()``.
            config_path: YAML file to load when ``config`` is not given.
            listener: Stokes source to use instead of a UDP listener.
            sender: Block sink to use instead of a UDP sender.
        """
        if config is not None:
            self._config = config
        elif config_path is not None:
            self._config = PolStreamConfig.from_yaml(config_path)
        else:
            self._config = PolStreamConfig()

        self._listener = listener
        self._sender = sender
        self._owns_listener = listener is None
        self._owns_sender = sender is None

        self._state = PipelineState.IDLE
        self._state_lock = threading.Lock()
        self._token = CancellationToken()
        self._channels: list[Channel] = []
        self._stages: list[Stage] = []
        self._threads: list[threading.Thread] = []
        self._outcomes: dict[str, StageOutcome] = {}
        self._spectrum_callback: Callable[[SpectrumFrame], None] | None = None
        self._start_time = 0.0

    @property
    def config(self) -> PolStreamConfig:
        return self._config

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def outcomes(self) -> dict[str, StageOutcome]:
        with self._state_lock:
            return dict(self._outcomes)

    @property
    def stages(self) -> dict[str, Stage]:
        return {stage.name: stage for stage in self._stages}

    def set_spectrum_callback(self, callback: Callable[[SpectrumFrame], None] | None) -> None:
        """Register a callable receiving every ``SpectrumFrame`` (called on the spectral thread)."""
        self._spectrum_callback = callback
        for stage in self._stages:
            if isinstance(stage, SpectralStage):
                stage.set_callback(callback)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """
        Build all components and start the stage threads.

        Raises:
            FilterConfigInvalid: If the highpass cannot be designed.
            SpectralConfigInvalid: If the spectral parameters are invalid.
            OSError: If a socket cannot be bound.
        """
        if self._state == PipelineState.RUNNING:
            logger.warning("Pipeline already running")
            return
        if self._state != PipelineState.IDLE:
            raise RuntimeError(f"Pipeline cannot be restarted from state {self._state.value}")

        cfg = self._config
        logger.info("Starting pipeline...")

        try:
            # Numeric components first: a design error must surface before any socket or thread
            pca = OnlinePCA(cfg.pca.learning_rate, cfg.pca.initial_weights)
            highpass = CausalHighpassFilter(
                cfg.filter.order, cfg.filter.cutoff_hz, cfg.filter.sampling_hz
            )
            spectrum = ShortTimeSpectrum(
                cfg.spectral.window_size,
                cfg.spectral.hop_size,
                cfg.spectral.window_type,
                sample_rate_hz=cfg.filter.sampling_hz,
            )

            if self._listener is None:
                self._listener = StokesUdpListener(
                    cfg.ingest.host, cfg.ingest.port, cfg.ingest.recv_timeout_s
                )
            if self._sender is None:
                self._sender = AudioUdpSender(
                    cfg.egress.target_ip, cfg.egress_sample_rate_hz, cfg.egress.port
                )
        except Exception as e:
            logger.error(f"Failed to start pipeline: {e}")
            self._close_sockets()
            self._state = PipelineState.ERROR
            raise

        poll = cfg.pipeline.poll_interval_s
        vectors, projected, filtered, to_egress = (
            self._make_channel(name)
            for name in ("ingest->pca", "pca->filter", "filter->spectral", "spectral->egress")
        )

        spectral_stage = SpectralStage(
            spectrum, filtered, to_egress, forward=cfg.egress.payload, poll_interval=poll
        )
        spectral_stage.set_callback(self._spectrum_callback)

        self._stages = [
            IngestStage(self._listener, vectors, cfg.ingest.zero_intensity_policy),
            PCAStage(pca, vectors, projected, poll_interval=poll),
            FilterStage(highpass, projected, filtered, poll_interval=poll),
            spectral_stage,
            EgressStage(self._sender, to_egress, cfg.egress.block_size, poll_interval=poll),
        ]

        self._start_time = time.time()
        self._state = PipelineState.RUNNING

        for stage in self._stages:
            thread = threading.Thread(
                target=self._run_stage,
                args=(stage,),
                name=f"polstream-{stage.name}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

        logger.info(
            "Pipeline started",
            extra={
                "stages": [s.name for s in self._stages],
                "payload": cfg.egress.payload,
                "queue_maxsize": cfg.pipeline.queue_maxsize,
            },
        )

    def _make_channel(self, name: str) -> Channel:
        channel = Channel(
            maxsize=self._config.pipeline.queue_maxsize,
            overflow_policy=self._config.pipeline.overflow_policy,
            name=name,
        )
        self._channels.append(channel)
        return channel

    def _run_stage(self, stage: Stage) -> None:
        """Thread target: run one stage and record how it ended."""
        try:
            stage.run(self._token)
        except ChannelDisconnected as e:
            if self._token.cancelled:
                self._record(StageOutcome(stage.name, OutcomeKind.CANCELLED))
            else:
                self._fail(stage, e)
        except PipelineError as e:
            self._fail(stage, e)
        except Exception as e:
            logger.exception(f"Unexpected error in {stage.name} stage")
            self._fail(stage, e)
        else:
            kind = OutcomeKind.CANCELLED if self._token.cancelled else OutcomeKind.COMPLETED
            self._record(StageOutcome(stage.name, kind))

    def _record(self, outcome: StageOutcome) -> None:
        with self._state_lock:
            self._outcomes[outcome.stage] = outcome
        logger.debug(f"{outcome.stage} stage {outcome.kind.value}")

    def _fail(self, stage: Stage, error: BaseException) -> None:
        self._record(StageOutcome(stage.name, OutcomeKind.FAILED, error))

        details = error.to_dict() if isinstance(error, PipelineError) else {"error_message": str(error)}
        logger.error(f"{stage.name} stage failed: {error}", extra={"stage": stage.name, **details})

        with self._state_lock:
            self._state = PipelineState.ERROR
        self._token.cancel(f"{stage.name} failed")
        self._close_channels()

    def _close_channels(self) -> None:
        for channel in self._channels:
            channel.close()

    def _close_sockets(self) -> None:
        if self._owns_listener and self._listener is not None:
            self._listener.close()
        if self._owns_sender and self._sender is not None:
            self._sender.close()

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until every stage thread has exited, then release owned sockets.

        Returns:
            True if all threads finished within ``timeout``.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            thread.join(remaining)

        finished = not any(t.is_alive() for t in self._threads)
        if finished:
            self._close_sockets()
            with self._state_lock:
                if self._state in (PipelineState.RUNNING, PipelineState.STOPPING):
                    self._state = PipelineState.STOPPED
        return finished

    def stop(self) -> None:
        """Cancel all stages, join their threads and release owned sockets."""
        if self._state in (PipelineState.IDLE, PipelineState.STOPPED):
            return

        logger.info("Stopping pipeline...")
        with self._state_lock:
            if self._state == PipelineState.RUNNING:
                self._state = PipelineState.STOPPING

        self._token.cancel("stop requested")
        self._close_channels()

        join_timeout = self._config.pipeline.join_timeout_s
        for thread in self._threads:
            thread.join(timeout=join_timeout)
            if thread.is_alive():
                logger.warning(f"{thread.name} did not stop in time")

        self._close_sockets()

        with self._state_lock:
            if self._state == PipelineState.STOPPING:
                self._state = PipelineState.STOPPED
        logger.info("Pipeline stopped", extra={"state": self._state.value})

    def raise_for_errors(self) -> None:
        """Re-raise the first stage failure, if any."""
        for outcome in self.outcomes.values():
            if outcome.kind == OutcomeKind.FAILED and outcome.error is not None:
                raise outcome.error

    def get_status(self) -> dict:
        """Get current pipeline status."""
        uptime = time.time() - self._start_time if self._start_time else 0.0
        outcomes = self.outcomes

        stages = {}
        for stage in self._stages:
            entry = stage.metrics.to_dict()
            outcome = outcomes.get(stage.name)
            entry["outcome"] = outcome.kind.value if outcome else None
            stages[stage.name] = entry

        return {
            "state": self._state.value,
            "uptime_seconds": uptime,
            "cancel_reason": self._token.reason,
            "stages": stages,
            "channels": [channel.get_status() for channel in self._channels],
            "version": defaults.ENGINE_VERSION,
        }


# =============================================================================
# Command Line Entry Point
# =============================================================================


def _build_config(args: argparse.Namespace) -> PolStreamConfig:
    if args.config:
        config = PolStreamConfig.from_yaml(args.config)
    else:
        config = PRESETS[args.preset].model_copy(deep=True)

    if args.log_level:
        config.logging.level = args.log_level.upper()
    if args.target_ip:
        config.egress.target_ip = args.target_ip
    return config


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Polarization stream processing engine")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument(
        "--preset", choices=sorted(PRESETS), default="default", help="Built-in configuration"
    )
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--target-ip", help="Visualizer IP address")
    args = parser.parse_args(argv)

    config = _build_config(args)
    setup_logging(
        level=config.logging.level,
        log_file=config.logging.log_file,
        structured=config.logging.structured,
    )

    pipeline = StokesPipeline(config)
    stop_requested = threading.Event()

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop_requested.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    try:
        pipeline.start()
    except (PipelineError, OSError) as e:
        logger.error(f"Pipeline failed to start: {e}")
        return 1

    interval = config.logging.stats_interval_s
    stages = pipeline.stages
    last_in = last_out = 0
    while not stop_requested.wait(interval):
        ingested = stages["ingest"].metrics.items_out
        egressed = stages["egress"].metrics.items_out
        log_throughput(logger, "ingest", (ingested - last_in) / interval, "samples/s")
        log_throughput(logger, "egress", (egressed - last_out) / interval, "values/s")
        last_in, last_out = ingested, egressed

        if pipeline.wait(timeout=0):
            break

    pipeline.stop()
    try:
        pipeline.raise_for_errors()
    except Exception as e:
        logger.error(f"Pipeline terminated with error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
