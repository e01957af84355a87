# pingwatch/sink/rotating.py
"""
Outcome log file with size/record/age rotation and bounded retention.

The active file keeps a fixed name (``pinger.log``); archives are
``pinger.log.1`` (newest) up to ``pinger.log.<backup_count>`` (oldest), with
``.gz`` appended when compression is on. Rotation is done by
``logging.handlers.RotatingFileHandler``; this module adds record and age
thresholds, recreation of a vanished active file, and error propagation
(the stock handlers print errors to stderr and carry on).
"""

import gzip
import logging
import logging.handlers
import os
import shutil
import time

from pingwatch.errors import SinkErrorKind, SinkIoError, classify_os_error
from pingwatch.schemas import LogRecord

logger = logging.getLogger(__name__)


def _gzip_namer(name: str) -> str:
    return name + ".gz"


def _gzip_rotator(source: str, dest: str) -> None:
    if not os.path.exists(source):
        return
    with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
        shutil.copyfileobj(src, dst)
    os.remove(source)


class OutcomeFileHandler(logging.handlers.RotatingFileHandler):
    """
    RotatingFileHandler that never swallows errors and rotates on bytes,
    records or age, whichever threshold is hit first (0 disables a threshold).

    Rotation state (bytes and records in the active file, when it was opened)
    lives here and is reset on every rotation.
    """

    def __init__(self, filename, max_bytes=0, max_records=0, max_age=0.0, backup_count=0, compress=False):
        super().__init__(
            filename,
            mode="a",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
            delay=True,
        )
        self.max_records = max_records
        self.max_age = max_age
        self.size = 0
        self.records = 0
        self.opened_at = time.monotonic()
        self.rotations = 0
        if compress:
            self.namer = _gzip_namer
            self.rotator = _gzip_rotator
        self.setFormatter(logging.Formatter("%(message)s"))

    def _open(self):
        stream = super()._open()
        # resuming an existing file: pick up where it left off
        self.size = os.path.getsize(self.baseFilename)
        self.records = _count_lines(self.baseFilename) if self.size else 0
        self.opened_at = time.monotonic()
        return stream

    def _close_stream(self) -> None:
        if self.stream is not None:
            stream, self.stream = self.stream, None
            try:
                stream.close()
            except OSError:
                logger.debug("closing stale stream for %s failed", self.baseFilename, exc_info=True)

    def _threshold_reached(self) -> bool:
        if self.maxBytes > 0 and self.size >= self.maxBytes:
            return True
        if self.max_records > 0 and self.records >= self.max_records:
            return True
        if self.max_age > 0 and self.size and time.monotonic() - self.opened_at >= self.max_age:
            return True
        return False

    def shouldRollover(self, record) -> bool:
        if self.stream is None:
            self.stream = self._open()
        if self._threshold_reached():
            return True
        if self.maxBytes > 0 and self.size:
            # never let a write push the active file past max_bytes
            pending = len((self.format(record) + self.terminator).encode(self.encoding))
            return self.size + pending > self.maxBytes
        return False

    def doRollover(self) -> None:
        self._close_stream()
        if self.backupCount > 0:
            super().doRollover()
        else:
            # no archives kept: start the active file over
            with open(self.baseFilename, "w", encoding=self.encoding):
                pass
        self.rotations += 1
        self.stream = self._open()

    def _discard_stream(self) -> None:
        """Drop a stream whose last write failed, keeping only whole records on disk."""
        self._close_stream()
        try:
            # closing flushes whatever part of the line was still buffered
            if os.path.getsize(self.baseFilename) > self.size:
                os.truncate(self.baseFilename, self.size)
        except OSError:
            logger.debug("could not trim partial write in %s", self.baseFilename, exc_info=True)

    def emit(self, record) -> None:
        """Rotate if needed, then write and flush one line. Errors propagate."""
        if self.stream is not None and not os.path.exists(self.baseFilename):
            logger.warning("active log file %s disappeared, recreating it", self.baseFilename)
            self._close_stream()

        if self.shouldRollover(record):
            try:
                self.doRollover()
            except OSError as exc:
                # the record still goes to the active file
                logger.warning("rotation of %s failed, writing to it anyway: %s", self.baseFilename, exc)
                if self.stream is None:
                    self.stream = self._open()

        line = self.format(record) + self.terminator
        try:
            self.stream.write(line)
            self.stream.flush()
        except OSError:
            self._discard_stream()
            raise
        self.size += len(line.encode(self.encoding))
        self.records += 1

        if self._threshold_reached():
            # record already written: a failed rotation is retried on the next append
            try:
                self.doRollover()
            except OSError as exc:
                logger.warning("rotation of %s failed, retrying on next append: %s", self.baseFilename, exc)

    def reset(self) -> None:
        """Drop the current stream so the next emit reopens the active file."""
        self.acquire()
        try:
            self._close_stream()
        finally:
            self.release()


def _count_lines(path: str) -> int:
    with open(path, "rb") as fh:
        return sum(chunk.count(b"\n") for chunk in iter(lambda: fh.read(64 * 1024), b""))


def _failures_only(record: logging.LogRecord) -> bool:
    return record.levelno >= logging.WARNING


class LogSink:
    """
    Appends LogRecords to the outcome file, one flushed line per record.

    A failed write is retried once against a freshly opened file; a second
    failure raises SinkIoError (``fatal`` when the log directory is gone).
    ``close`` flushes and closes exactly once.
    """

    def __init__(
        self,
        path: str,
        max_bytes: int = 0,
        max_records: int = 0,
        max_age: float = 0.0,
        backup_count: int = 3,
        compress: bool = False,
        failures_only: bool = False,
    ):
        self.path = os.path.abspath(path)
        self.handler = OutcomeFileHandler(
            self.path,
            max_bytes=max_bytes,
            max_records=max_records,
            max_age=max_age,
            backup_count=backup_count,
            compress=compress,
        )
        if failures_only:
            self.handler.addFilter(_failures_only)
        self.records_written = 0
        self._closed = False

    @classmethod
    def from_settings(cls, settings) -> "LogSink":
        return cls(
            settings.log_file,
            max_bytes=settings.max_bytes,
            max_records=settings.max_records,
            max_age=settings.max_age,
            backup_count=settings.backup_count,
            compress=settings.compress,
            failures_only=settings.failures_only,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def rotations(self) -> int:
        return self.handler.rotations

    def archive_paths(self) -> list:
        """Existing archive files, newest first."""
        paths = []
        for index in range(1, self.handler.backupCount + 1):
            candidate = self.handler.rotation_filename(f"{self.path}.{index}")
            if os.path.exists(candidate):
                paths.append(candidate)
        return paths

    def _to_logging_record(self, record: LogRecord) -> logging.LogRecord:
        entry = logging.LogRecord(
            name="pingwatch.outcomes",
            level=logging.WARNING if record.is_failure else logging.INFO,
            pathname=__file__,
            lineno=0,
            msg=record.to_line(),
            args=None,
            exc_info=None,
        )
        entry.created = record.timestamp.timestamp()
        return entry

    def append(self, record: LogRecord) -> None:
        if self._closed:
            raise SinkIoError(SinkErrorKind.OTHER, f"sink for {self.path} is closed")

        entry = self._to_logging_record(record)
        try:
            emitted = self.handler.handle(entry)
        except OSError as exc:
            error = classify_os_error(exc, self.path)
            if error.fatal:
                raise error from exc
            logger.warning("write to %s failed (%s), retrying once", self.path, error)
            self.handler.reset()
            try:
                emitted = self.handler.handle(entry)
            except OSError as retry_exc:
                raise classify_os_error(retry_exc, self.path) from retry_exc
        if emitted:
            self.records_written += 1

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self.handler.flush()
        except (OSError, ValueError):
            logger.warning("final flush of %s failed", self.path, exc_info=True)
        finally:
            self.handler.close()
        logger.debug("closed %s after %d records", self.path, self.records_written)

    def __enter__(self) -> "LogSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
