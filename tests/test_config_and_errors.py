# tests/test_config_and_errors.py
import errno
import socket
from datetime import datetime, timezone

import icmplib
import pytest

from pingwatch.config import Settings, load_settings, parse_duration
from pingwatch.errors import (
    ConfigError,
    FailureKind,
    SinkErrorKind,
    categorize_exception,
    classify_os_error,
)
from pingwatch.schemas import Failure, LogRecord, Success


@pytest.mark.parametrize(
    "text,seconds",
    [("5s", 5.0), ("500ms", 0.5), ("2m", 120.0), ("1h", 3600.0), ("1.5", 1.5), (" 10 s ", 10.0)],
)
def test_parse_duration(text, seconds):
    assert parse_duration(text) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["", "fast", "-1s", "5 days", "1e3"])
def test_parse_duration_rejects_garbage(text):
    with pytest.raises(ConfigError):
        parse_duration(text)


def test_settings_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("PINGWATCH_ADDRESS", "example.org")
    monkeypatch.setenv("PINGWATCH_INTERVAL", "750ms")
    monkeypatch.setenv("PINGWATCH_TIMEOUT", "250ms")
    monkeypatch.setenv("PINGWATCH_LOG_FILE", str(tmp_path / "x.log"))
    monkeypatch.setenv("PINGWATCH_MAX_BYTES", "2048")
    monkeypatch.setenv("PINGWATCH_BACKUP_COUNT", "7")
    monkeypatch.setenv("PINGWATCH_COMPRESS", "yes")
    monkeypatch.setenv("PINGWATCH_FAILURES_ONLY", "1")

    settings = load_settings()

    assert settings.address == "example.org"
    assert settings.interval == pytest.approx(0.75)
    assert settings.probe_timeout == pytest.approx(0.25)
    assert settings.log_file == str(tmp_path / "x.log")
    assert settings.max_bytes == 2048
    assert settings.backup_count == 7
    assert settings.compress is True
    assert settings.failures_only is True
    assert settings.validate() is settings


def test_settings_invalid_env_falls_back(monkeypatch):
    monkeypatch.setenv("PINGWATCH_INTERVAL", "soon")
    monkeypatch.setenv("PINGWATCH_TIMEOUT", "never")
    monkeypatch.setenv("PINGWATCH_MAX_BYTES", "lots")

    settings = Settings.from_env()

    assert settings.interval == Settings.interval
    assert settings.probe_timeout is None
    assert settings.max_bytes == Settings.max_bytes


def test_effective_timeout_never_exceeds_interval():
    assert Settings(interval=5.0).effective_timeout == 2.0
    assert Settings(interval=0.5).effective_timeout == 0.5
    assert Settings(interval=1.0, probe_timeout=3.0).effective_timeout == 1.0
    assert Settings(interval=10.0, probe_timeout=3.0).effective_timeout == 3.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"address": None},
        {"interval": 0},
        {"interval": -2},
        {"probe_timeout": 0},
        {"backup_count": -1},
        {"max_bytes": -1},
        {"reresolve_every": -3},
    ],
)
def test_validate_rejects_bad_settings(tmp_path, overrides):
    values = {"address": "192.0.2.1", "log_file": str(tmp_path / "pinger.log")}
    values.update(overrides)
    with pytest.raises(ConfigError):
        Settings(**values).validate()


def test_validate_rejects_missing_log_directory(tmp_path):
    with pytest.raises(ConfigError):
        Settings(address="192.0.2.1", log_file=str(tmp_path / "missing" / "pinger.log")).validate()


def test_validate_rejects_directory_as_log_file(tmp_path):
    with pytest.raises(ConfigError):
        Settings(address="192.0.2.1", log_file=str(tmp_path)).validate()


class _Unreachable(icmplib.DestinationUnreachable):
    def __init__(self):
        Exception.__init__(self, "unreachable")


@pytest.mark.parametrize(
    "exc,kind",
    [
        (socket.gaierror(-2, "Name or service not known"), FailureKind.RESOLUTION_FAILED),
        (icmplib.NameLookupError("example.invalid"), FailureKind.RESOLUTION_FAILED),
        (_Unreachable(), FailureKind.UNREACHABLE),
        (PermissionError(errno.EPERM, "Operation not permitted"), FailureKind.PERMISSION_DENIED),
        (TimeoutError(), FailureKind.TIMEOUT),
        (OSError(errno.ENETUNREACH, "Network is unreachable"), FailureKind.UNREACHABLE),
        (OSError(errno.EINVAL, "Invalid argument"), FailureKind.OTHER),
        (ValueError("bad"), FailureKind.OTHER),
    ],
)
def test_categorize_exception(exc, kind):
    assert categorize_exception(exc) is kind


def test_classify_missing_directory_is_fatal(tmp_path):
    path = str(tmp_path / "gone" / "pinger.log")
    error = classify_os_error(FileNotFoundError(errno.ENOENT, "No such file or directory"), path)
    assert error.kind is SinkErrorKind.PATH_MISSING
    assert error.fatal


def test_classify_missing_file_in_existing_directory_is_transient(tmp_path):
    path = str(tmp_path / "pinger.log")
    error = classify_os_error(FileNotFoundError(errno.ENOENT, "No such file or directory"), path)
    assert not error.fatal


@pytest.mark.parametrize(
    "exc,kind",
    [
        (PermissionError(errno.EACCES, "Permission denied"), SinkErrorKind.PERMISSION_DENIED),
        (OSError(errno.ENOSPC, "No space left on device"), SinkErrorKind.DISK_FULL),
        (OSError(errno.EIO, "Input/output error"), SinkErrorKind.OTHER),
    ],
)
def test_classify_transient_errors(tmp_path, exc, kind):
    error = classify_os_error(exc, str(tmp_path / "pinger.log"))
    assert error.kind is kind
    assert error.fatal is False


def test_log_line_format():
    stamp = datetime(2026, 10, 17, 12, 0, 0, 123000, tzinfo=timezone.utc)
    ok = LogRecord(stamp, "example.org", Success(rtt_ms=12.346, address="93.184.216.34"))
    bad = LogRecord(stamp, "example.org", Failure(FailureKind.TIMEOUT, "no reply within 2.00s"))

    assert ok.to_line() == (
        "2026-10-17T12:00:00.123+00:00 SUCCESS host=example.org address=93.184.216.34 rtt_ms=12.35"
    )
    assert bad.to_line() == (
        '2026-10-17T12:00:00.123+00:00 FAILURE kind=TIMEOUT host=example.org address=- '
        'detail="no reply within 2.00s"'
    )


def test_log_line_stays_on_one_line():
    stamp = datetime(2026, 10, 17, tzinfo=timezone.utc)
    record = LogRecord(stamp, "h", Failure(FailureKind.OTHER, 'line one\nline "two"'))
    line = record.to_line()
    assert "\n" not in line
    assert line.endswith('detail="line one\\nline \\"two\\""')
