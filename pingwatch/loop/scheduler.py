# pingwatch/loop/scheduler.py

import logging
import math
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime, timezone
from typing import Optional

from pingwatch.errors import ConfigError, FailureKind, SinkIoError
from pingwatch.loop.shutdown import ShutdownSignal
from pingwatch.loop.state import RunState
from pingwatch.prober.target import TargetProber
from pingwatch.schemas import Failure, LogRecord, ProbeOutcome, Success
from pingwatch.sink.rotating import LogSink

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Probes the target once per interval and appends every outcome to the sink
    until shutdown is requested.

    Ticks sit on a fixed grid (start + n * interval) so waiting does not drift.
    Probes run one at a time on a daemon thread; the loop waits for a probe at
    most one interval, after which the tick is recorded as a timeout. A stalled
    probe never holds up process exit.
    Shutdown is checked before every probe, an in-flight probe is allowed to
    finish. The sink is closed on every exit path.
    """

    def __init__(
        self,
        interval: float,
        prober: TargetProber,
        sink: LogSink,
        shutdown: ShutdownSignal,
        probe_timeout: Optional[float] = None,
        clock=time.monotonic,
    ):
        if interval is None or interval <= 0:
            raise ConfigError(f"interval must be positive, got {interval}")
        if probe_timeout is not None and probe_timeout <= 0:
            raise ConfigError(f"probe timeout must be positive, got {probe_timeout}")
        self.interval = float(interval)
        self.probe_timeout = min(probe_timeout or self.interval, self.interval)
        self.prober = prober
        self.sink = sink
        self.shutdown = shutdown
        self.clock = clock
        self._inflight: Optional[Future] = None

    def _wait_until(self, deadline: float) -> bool:
        """Wait for the deadline or shutdown. True means shutdown won."""
        while True:
            if self.shutdown.is_set():
                return True
            remaining = deadline - self.clock()
            if remaining <= 0:
                return False
            if self.shutdown.wait(remaining):
                return True

    def _start_probe(self) -> Future:
        future: Future = Future()

        def work():
            future.set_running_or_notify_cancel()
            try:
                future.set_result(self.prober.probe(self.probe_timeout))
            except Exception as exc:
                future.set_exception(exc)

        threading.Thread(target=work, name="pingwatch-probe", daemon=True).start()
        return future

    def _probe(self) -> ProbeOutcome:
        if self._inflight is not None and not self._inflight.done():
            return Failure(FailureKind.TIMEOUT, "previous probe still running")

        self._inflight = self._start_probe()
        try:
            return self._inflight.result(timeout=self.interval)
        except FutureTimeout:
            logger.warning("probe of %s stalled for %.2fs", self.prober.host, self.interval)
            return Failure(FailureKind.TIMEOUT, f"probe did not finish within {self.interval:.2f}s")
        except Exception as exc:
            # probe errors are data, never a reason to stop
            logger.exception("probe of %s raised", self.prober.host)
            return Failure(FailureKind.OTHER, f"{exc.__class__.__name__}: {exc}")

    def _advance(self, deadline: float, run: RunState) -> float:
        deadline += self.interval
        behind = self.clock() - deadline
        if behind >= self.interval:
            # skip the ticks we missed instead of firing them back to back
            missed = math.floor(behind / self.interval)
            deadline += missed * self.interval
            run.skipped_ticks += missed
            logger.warning("fell behind schedule, skipped %d tick(s)", missed)
        return deadline

    def _echo(self, outcome: ProbeOutcome) -> None:
        if isinstance(outcome, Success):
            logger.debug("reply from %s in %.2f ms", outcome.address, outcome.rtt_ms)
        else:
            logger.warning("probe of %s failed: %s %s", self.prober.host, outcome.kind.value, outcome.detail)

    def run(self) -> RunState:
        run = RunState()
        deadline = self.clock() + self.interval
        logger.info("probing %s every %.2fs", self.prober.host, self.interval)

        try:
            with self.sink:
                while True:
                    if self._wait_until(deadline):
                        logger.info("shutdown requested, stopping")
                        run.stop_reason = "shutdown"
                        break

                    stamp = datetime.now(timezone.utc)
                    outcome = self._probe()
                    run.record(outcome)
                    self._echo(outcome)

                    try:
                        self.sink.append(LogRecord(timestamp=stamp, host=self.prober.host, outcome=outcome))
                    except SinkIoError as exc:
                        run.sink_errors += 1
                        if exc.fatal:
                            run.stop_reason = "sink_error"
                            logger.critical("cannot write outcome log: %s", exc)
                            raise
                        logger.error("dropped one outcome record: %s", exc)

                    deadline = self._advance(deadline, run)
        finally:
            logger.info("stopped after %d tick(s): %s", run.ticks, run.stop_reason or "error")

        return run
