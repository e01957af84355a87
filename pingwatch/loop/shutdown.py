# pingwatch/loop/shutdown.py
import signal
import threading


class ShutdownSignal:
    """Read-only view of the shutdown flag handed to the scheduler."""

    def __init__(self, event: threading.Event):
        self._event = event

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout=None) -> bool:
        """Block until shutdown is requested or ``timeout`` passes.

        Returns True if shutdown was requested. Returns at once when the flag
        was set before the call.
        """
        return self._event.wait(timeout)


class ShutdownController:
    """
    Turns SIGINT/SIGTERM into a single shutdown request.

    The first notification sets the flag; later ones (of either kind) are
    counted and otherwise ignored. There is no escalation to a hard stop.
    Use as a context manager so the previous handlers come back afterwards.
    """

    def __init__(self, signals=None):
        if signals is None:
            signals = [signal.SIGINT]
            if hasattr(signal, "SIGTERM"):
                signals.append(signal.SIGTERM)
        self.signals = tuple(signals)
        self.notifications = 0
        self.received = None
        self._event = threading.Event()
        self.signal = ShutdownSignal(self._event)
        self._previous = {}

    def request(self, signum=None) -> bool:
        """Record one termination notification. Returns True only for the first.

        Called from the signal handler: counts and sets the flag, never logs.
        """
        self.notifications += 1
        if self._event.is_set():
            return False
        self.received = signum
        self._event.set()
        return True

    def _handle(self, signum, _frame) -> None:
        self.request(signum)

    def install(self) -> "ShutdownController":
        # signal.signal only works from the main thread
        for signum in self.signals:
            self._previous[signum] = signal.signal(signum, self._handle)
        return self

    def restore(self) -> None:
        while self._previous:
            signum, handler = self._previous.popitem()
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)

    def __enter__(self) -> "ShutdownController":
        return self.install()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()
