# pingwatch/errors.py
"""Error taxonomy: fatal config errors, probe failure kinds, sink I/O errors."""

import errno
import os
import socket
from enum import Enum
from typing import Optional

import icmplib


class PingwatchError(Exception):
    """Base class for errors raised by pingwatch."""


class ConfigError(PingwatchError):
    """Invalid configuration, reported before the loop starts."""


class FailureKind(str, Enum):
    TIMEOUT = "TIMEOUT"
    UNREACHABLE = "UNREACHABLE"
    RESOLUTION_FAILED = "RESOLUTION_FAILED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    OTHER = "OTHER"


class SinkErrorKind(str, Enum):
    PATH_MISSING = "PATH_MISSING"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    DISK_FULL = "DISK_FULL"
    OTHER = "OTHER"


class SinkIoError(PingwatchError):
    """A log file write or rotation failed.

    ``fatal`` is True for structural failures (the log directory is gone) that
    the loop cannot recover from; everything else is reported and skipped.
    """

    def __init__(self, kind: SinkErrorKind, detail: str, fatal: bool = False):
        super().__init__(f"{kind.value}: {detail}")
        self.kind = kind
        self.detail = detail
        self.fatal = fatal


def categorize_exception(exc: BaseException) -> FailureKind:
    """Map icmplib/socket exceptions raised by a probe to a FailureKind."""
    if isinstance(exc, icmplib.TimeoutExceeded):
        return FailureKind.TIMEOUT

    # TimeExceeded is the ICMP "TTL expired in transit" reply, not a socket timeout
    if isinstance(exc, (icmplib.DestinationUnreachable, icmplib.TimeExceeded)):
        return FailureKind.UNREACHABLE

    if isinstance(exc, icmplib.NameLookupError):
        return FailureKind.RESOLUTION_FAILED

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return FailureKind.RESOLUTION_FAILED

    if isinstance(exc, (icmplib.SocketPermissionError, PermissionError)):
        return FailureKind.PERMISSION_DENIED

    if isinstance(exc, (TimeoutError, socket.timeout)):
        return FailureKind.TIMEOUT

    if isinstance(exc, OSError) and exc.errno in (errno.ENETUNREACH, errno.EHOSTUNREACH):
        return FailureKind.UNREACHABLE

    return FailureKind.OTHER


def classify_os_error(exc: OSError, path: Optional[str] = None) -> SinkIoError:
    """Turn an OSError from the sink into a SinkIoError, deciding fatality."""
    directory = os.path.dirname(os.path.abspath(path)) if path else None
    detail = f"{exc.strerror or exc}" + (f" ({path})" if path else "")

    if isinstance(exc, (FileNotFoundError, NotADirectoryError)) or exc.errno in (errno.ENOENT, errno.ENOTDIR):
        # a missing file is recreated on the next append; a missing directory is not
        if directory is None or not os.path.isdir(directory):
            return SinkIoError(SinkErrorKind.PATH_MISSING, detail, fatal=True)
        return SinkIoError(SinkErrorKind.OTHER, detail)

    if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM):
        return SinkIoError(SinkErrorKind.PERMISSION_DENIED, detail)

    if exc.errno in (errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)):
        return SinkIoError(SinkErrorKind.DISK_FULL, detail)

    return SinkIoError(SinkErrorKind.OTHER, detail)
