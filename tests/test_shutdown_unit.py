# tests/test_shutdown_unit.py
import logging
import os
import signal
import threading
import time
from datetime import datetime

from pingwatch.loop.scheduler import Scheduler
from pingwatch.loop.shutdown import ShutdownController
from pingwatch.prober.fake import FakeProber
from pingwatch.prober.target import Target, TargetProber
from pingwatch.schemas import Success
from pingwatch.sink.rotating import LogSink

ADDRESS = "192.0.2.1"


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate() and time.monotonic() < deadline:
        time.sleep(0.01)
    return predicate()


def test_request_sets_signal_once():
    """Only the first notification counts; the rest are no-ops."""
    controller = ShutdownController()
    assert not controller.signal.is_set()

    assert controller.request(signal.SIGTERM) is True
    assert controller.request(signal.SIGINT) is False
    assert controller.request(signal.SIGTERM) is False

    assert controller.signal.is_set()
    assert controller.notifications == 3
    assert controller.received == signal.SIGTERM


def test_signal_view_is_read_only():
    controller = ShutdownController()
    assert not hasattr(controller.signal, "set")
    assert not hasattr(controller.signal, "clear")


def test_wait_returns_immediately_when_already_set():
    controller = ShutdownController()
    controller.request()
    started = time.monotonic()
    assert controller.signal.wait(5.0) is True
    assert time.monotonic() - started < 0.5


def test_wait_times_out_when_not_set():
    controller = ShutdownController()
    assert controller.signal.wait(0.05) is False


def test_handlers_installed_and_restored():
    before_int = signal.getsignal(signal.SIGINT)
    before_term = signal.getsignal(signal.SIGTERM)

    with ShutdownController() as controller:
        assert signal.getsignal(signal.SIGINT) == controller._handle
        assert signal.getsignal(signal.SIGTERM) == controller._handle

    assert signal.getsignal(signal.SIGINT) == before_int
    assert signal.getsignal(signal.SIGTERM) == before_term


def test_real_signals_are_idempotent():
    with ShutdownController() as controller:
        for expected in range(1, 4):
            os.kill(os.getpid(), signal.SIGTERM)
            assert _wait_for(lambda: controller.notifications >= expected)
        os.kill(os.getpid(), signal.SIGINT)
        assert _wait_for(lambda: controller.notifications >= 4)

    assert controller.signal.is_set()
    assert controller.received == signal.SIGTERM


def test_scenario_c_interrupt_during_wait(tmp_path, monkeypatch):
    """SIGINT mid-wait: loop exits promptly, one final flush, last line complete."""
    sink = LogSink(str(tmp_path / "pinger.log"))
    closes = []
    real_close = sink.handler.close
    monkeypatch.setattr(sink.handler, "close", lambda: (closes.append(1), real_close()))

    fake = FakeProber(script=[Success(rtt_ms=4.2, address=ADDRESS)] * 50)
    sent = []

    def interrupt():
        sent.append(time.monotonic())
        os.kill(os.getpid(), signal.SIGINT)
        # a second notification while the first is being honoured
        os.kill(os.getpid(), signal.SIGTERM)

    with ShutdownController() as controller:
        scheduler = Scheduler(0.2, TargetProber(Target(ADDRESS), fake), sink, controller.signal, probe_timeout=0.1)
        timer = threading.Timer(0.5, interrupt)
        timer.start()
        try:
            run = scheduler.run()
        finally:
            timer.cancel()
        stopped = time.monotonic()

    assert run.stop_reason == "shutdown"
    assert stopped - sent[0] < 0.45
    assert closes == [1]
    assert sink.closed

    with open(sink.path, encoding="utf-8") as fh:
        content = fh.read()
    assert content.endswith("\n")
    last = content.splitlines()[-1]
    stamp, status, rest = last.split(" ", 2)
    datetime.fromisoformat(stamp)
    assert status == "SUCCESS"
    assert rest.endswith("rtt_ms=4.20")
    assert run.ticks == len(content.splitlines())


def test_request_does_not_log(caplog):
    controller = ShutdownController()
    with caplog.at_level(logging.DEBUG):
        controller.request(signal.SIGINT)
        controller.request(signal.SIGTERM)
    assert caplog.records == []
