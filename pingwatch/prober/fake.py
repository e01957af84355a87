# pingwatch/prober/fake.py
import time
from collections import deque

from pingwatch.errors import FailureKind
from pingwatch.prober.base import Prober
from pingwatch.schemas import Failure, ProbeOutcome


class FakeProber(Prober):
    """
    script: iterable of ProbeOutcome objects returned one per call, in order.
    An entry may also be a callable taking (address, timeout); it is called and
    its return value used, which lets tests simulate slow or raising probes.
    If no scripted entry is left, returns a timeout failure.
    """
    def __init__(self, script=None, delay: float = 0.0):
        self.script = deque(script or [])
        self.delay = delay
        self.calls = []

    def probe_once(self, address: str, timeout: float) -> ProbeOutcome:
        self.calls.append(address)
        if self.delay:
            time.sleep(self.delay)
        if self.script:
            entry = self.script.popleft()
            if callable(entry):
                return entry(address, timeout)
            return entry
        # default: timeout
        return Failure(FailureKind.TIMEOUT, "no scripted reply", address=address)
