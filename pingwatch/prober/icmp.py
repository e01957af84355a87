# pingwatch/prober/icmp.py
import ipaddress
import itertools
import logging
import os

import icmplib

from pingwatch.errors import FailureKind, categorize_exception
from pingwatch.prober.base import Prober
from pingwatch.schemas import Failure, ProbeOutcome, Success

logger = logging.getLogger(__name__)


class IcmpProber(Prober):
    """
    Sends a single ICMP echo request with icmplib and waits for the matching reply.

    Unprivileged mode uses datagram ICMP sockets (Linux needs the process group
    inside net.ipv4.ping_group_range); privileged mode uses raw sockets and needs
    root or CAP_NET_RAW. Either way a missing permission is reported as a
    PERMISSION_DENIED failure on every tick instead of killing the monitor.
    """

    def __init__(self, privileged: bool = False, payload_size: int = 56):
        self.privileged = privileged
        self.payload_size = payload_size
        self.identifier = os.getpid() & 0xFFFF
        self._sequence = itertools.count()

    def _open_socket(self, address: str):
        if ipaddress.ip_address(address).version == 6:
            return icmplib.ICMPv6Socket(privileged=self.privileged)
        return icmplib.ICMPv4Socket(privileged=self.privileged)

    def probe_once(self, address: str, timeout: float) -> ProbeOutcome:
        request = icmplib.ICMPRequest(
            destination=address,
            id=self.identifier,
            sequence=next(self._sequence) & 0xFFFF,
            payload_size=self.payload_size,
        )
        try:
            with self._open_socket(address) as sock:
                sock.send(request)
                reply = sock.receive(request, timeout)
                reply.raise_for_status()
        except icmplib.TimeoutExceeded:
            return Failure(FailureKind.TIMEOUT, f"no reply within {timeout:.2f}s", address=address)
        except (icmplib.ICMPLibError, OSError, ValueError) as exc:
            kind = categorize_exception(exc)
            logger.debug("probe of %s failed: %r", address, exc)
            return Failure(kind, str(exc) or exc.__class__.__name__, address=address)

        rtt_ms = (reply.time - request.time) * 1000
        return Success(rtt_ms=rtt_ms, address=address)
