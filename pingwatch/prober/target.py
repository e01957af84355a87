# pingwatch/prober/target.py
import ipaddress
import logging
from typing import Callable, List, Optional

import icmplib

from pingwatch.errors import FailureKind
from pingwatch.prober.base import Prober
from pingwatch.schemas import Failure, ProbeOutcome

logger = logging.getLogger(__name__)

Resolver = Callable[[str], List[str]]


def is_literal_address(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return False
    return True


class Target:
    """
    A host as given by the operator plus the address it last resolved to.

    Literal IPv4/IPv6 addresses are used as-is. Names go through the platform
    resolver on first use and then every ``reresolve_every`` lookups
    (0 keeps the first address for the whole run). A failed lookup clears the
    cached address so the next lookup retries.
    """

    def __init__(self, host: str, reresolve_every: int = 0, resolver: Optional[Resolver] = None):
        self.host = host.strip()
        self.reresolve_every = reresolve_every
        self.resolver = resolver or icmplib.resolve
        self.is_literal = is_literal_address(self.host)
        self.address: Optional[str] = self.host if self.is_literal else None
        self._uses_since_resolve = 0

    def _resolution_due(self) -> bool:
        if self.address is None:
            return True
        return bool(self.reresolve_every) and self._uses_since_resolve >= self.reresolve_every

    def resolve(self) -> str:
        """Return the address to probe, resolving first if due.

        Raises icmplib.NameLookupError (or OSError) when the name does not resolve.
        """
        if self.is_literal:
            return self.host

        if self._resolution_due():
            try:
                addresses = self.resolver(self.host)
                if not addresses:
                    raise icmplib.NameLookupError(self.host)
            except (icmplib.NameLookupError, OSError):
                self.address = None
                raise
            if addresses[0] != self.address:
                logger.info("%s resolved to %s", self.host, addresses[0])
            self.address = addresses[0]
            self._uses_since_resolve = 0

        self._uses_since_resolve += 1
        return self.address


class TargetProber:
    """Binds one Target to one Prober: resolve (if due), then probe."""

    def __init__(self, target: Target, prober: Prober):
        self.target = target
        self.prober = prober

    @property
    def host(self) -> str:
        return self.target.host

    def probe(self, timeout: float) -> ProbeOutcome:
        try:
            address = self.target.resolve()
        except (icmplib.NameLookupError, OSError) as exc:
            return Failure(FailureKind.RESOLUTION_FAILED, str(exc) or f"cannot resolve {self.host}")
        return self.prober.probe_once(address, timeout)
