# pingwatch/config.py
import os
import re
from dataclasses import dataclass
from typing import Optional

from pingwatch.errors import ConfigError

_DURATION_RE = re.compile(r"^\s*(?P<value>\d+(?:\.\d+)?)\s*(?P<unit>ms|s|m|h)?\s*$")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


def parse_duration(text: str) -> float:
    """Parse ``500ms``, ``5s``, ``2m``, ``1h`` or bare seconds into seconds."""
    match = _DURATION_RE.match(str(text))
    if not match:
        raise ConfigError(f"invalid duration: {text!r}")
    return float(match.group("value")) * _UNIT_SECONDS[match.group("unit")]


def _duration_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return parse_duration(value) if value is not None else default
    except ConfigError:
        return default


def _optional_duration_env(name: str) -> Optional[float]:
    try:
        value = os.getenv(name)
        return parse_duration(value) if value else None
    except ConfigError:
        return None


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    address: Optional[str] = None
    interval: float = 5.0
    probe_timeout: Optional[float] = None   # None -> min(2s, interval)
    privileged: bool = False

    # 0 -> resolve once and keep the address for the whole run
    reresolve_every: int = 60

    log_file: str = "pinger.log"
    max_bytes: int = 10 * 1024 * 1024
    max_records: int = 0
    max_age: float = 0.0
    backup_count: int = 3
    compress: bool = False
    failures_only: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from PINGWATCH_* environment variables."""
        return cls(
            address=os.getenv("PINGWATCH_ADDRESS", cls.address),
            interval=_duration_env("PINGWATCH_INTERVAL", cls.interval),
            probe_timeout=_optional_duration_env("PINGWATCH_TIMEOUT"),
            privileged=_bool_env("PINGWATCH_PRIVILEGED", cls.privileged),
            reresolve_every=_int_env("PINGWATCH_RERESOLVE_EVERY", cls.reresolve_every),
            log_file=os.getenv("PINGWATCH_LOG_FILE", cls.log_file),
            max_bytes=_int_env("PINGWATCH_MAX_BYTES", cls.max_bytes),
            max_records=_int_env("PINGWATCH_MAX_RECORDS", cls.max_records),
            max_age=_duration_env("PINGWATCH_MAX_AGE", cls.max_age),
            backup_count=_int_env("PINGWATCH_BACKUP_COUNT", cls.backup_count),
            compress=_bool_env("PINGWATCH_COMPRESS", cls.compress),
            failures_only=_bool_env("PINGWATCH_FAILURES_ONLY", cls.failures_only),
        )

    @property
    def effective_timeout(self) -> float:
        # a probe may never outlive its tick
        if self.probe_timeout is None:
            return min(2.0, self.interval)
        return min(self.probe_timeout, self.interval)

    def validate(self) -> "Settings":
        if not self.address:
            raise ConfigError("no target address given")
        if self.interval <= 0:
            raise ConfigError(f"interval must be positive, got {self.interval}")
        if self.probe_timeout is not None and self.probe_timeout <= 0:
            raise ConfigError(f"probe timeout must be positive, got {self.probe_timeout}")
        if self.reresolve_every < 0:
            raise ConfigError("reresolve_every cannot be negative")
        if self.max_bytes < 0 or self.max_records < 0 or self.max_age < 0:
            raise ConfigError("rotation thresholds cannot be negative")
        if self.backup_count < 0:
            raise ConfigError("backup_count cannot be negative")

        directory = os.path.dirname(os.path.abspath(self.log_file))
        if not os.path.isdir(directory):
            raise ConfigError(f"log directory does not exist: {directory}")
        if not os.access(directory, os.W_OK):
            raise ConfigError(f"log directory is not writable: {directory}")
        if os.path.isdir(self.log_file):
            raise ConfigError(f"log file path is a directory: {self.log_file}")
        return self


def load_settings() -> Settings:
    """Load settings from the environment with defaults."""
    return Settings.from_env()
