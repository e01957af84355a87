# pingwatch/schemas.py
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional, Union

from pingwatch.errors import FailureKind

OutcomeStatus = Literal["SUCCESS", "FAILURE"]


@dataclass(frozen=True)
class Success:
    rtt_ms: float
    address: Optional[str] = None

    status: OutcomeStatus = "SUCCESS"


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    detail: str = ""
    address: Optional[str] = None

    status: OutcomeStatus = "FAILURE"


ProbeOutcome = Union[Success, Failure]


def _quote(value: str) -> str:
    # keep one record per line no matter what an exception message contains
    cleaned = value.replace("\\", "\\\\").replace('"', '\\"')
    cleaned = cleaned.replace("\r", "\\r").replace("\n", "\\n")
    return f'"{cleaned}"'


@dataclass(frozen=True)
class LogRecord:
    """One probe outcome stamped with the time it was recorded."""

    timestamp: datetime
    host: str
    outcome: ProbeOutcome

    @property
    def is_failure(self) -> bool:
        return isinstance(self.outcome, Failure)

    def to_line(self) -> str:
        """Render as a single line without the trailing newline.

        Column order is fixed: timestamp, status, [kind], host, address, then
        ``rtt_ms`` for successes or ``detail`` for failures.
        """
        stamp = self.timestamp.isoformat(timespec="milliseconds")
        address = self.outcome.address or "-"
        if isinstance(self.outcome, Success):
            return f"{stamp} SUCCESS host={self.host} address={address} rtt_ms={self.outcome.rtt_ms:.2f}"
        return (
            f"{stamp} FAILURE kind={self.outcome.kind.value} host={self.host} "
            f"address={address} detail={_quote(self.outcome.detail)}"
        )
