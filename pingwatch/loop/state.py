# pingwatch/loop/state.py
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from pingwatch.schemas import Failure, ProbeOutcome


@dataclass
class RunState:
    ticks: int = 0
    successes: int = 0
    failures: Counter = field(default_factory=Counter)   # FailureKind -> count
    skipped_ticks: int = 0
    sink_errors: int = 0
    last_rtt_ms: Optional[float] = None
    stop_reason: Optional[str] = None   # "shutdown" | "sink_error" | "error"

    def record(self, outcome: ProbeOutcome) -> None:
        self.ticks += 1
        if isinstance(outcome, Failure):
            self.failures[outcome.kind] += 1
        else:
            self.successes += 1
            self.last_rtt_ms = outcome.rtt_ms

    @property
    def failure_count(self) -> int:
        return sum(self.failures.values())

    def summary(self) -> dict:
        return {
            "ticks": self.ticks,
            "successes": self.successes,
            "failures": {kind.value: count for kind, count in self.failures.items()},
            "skipped_ticks": self.skipped_ticks,
            "sink_errors": self.sink_errors,
            "stop_reason": self.stop_reason,
        }
