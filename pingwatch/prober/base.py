# pingwatch/prober/base.py
from abc import ABC, abstractmethod

from pingwatch.schemas import ProbeOutcome


class Prober(ABC):
    @abstractmethod
    def probe_once(self, address: str, timeout: float) -> ProbeOutcome:
        """Send exactly one probe to a resolved address and classify the result.

        Failures are returned as ``Failure`` outcomes, not raised.
        """
        raise NotImplementedError
