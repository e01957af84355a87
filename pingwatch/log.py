# pingwatch/log.py
"""Diagnostic logging (stderr). The outcome log file is handled by pingwatch.sink."""

import logging
import os
from typing import Optional

DEFAULT_LOG_LEVEL = os.getenv("PINGWATCH_LOG_LEVEL", "INFO").upper()


def setup_logging(level: Optional[str] = None) -> None:
    effective_level = (level or DEFAULT_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, effective_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
