"""Process-wide logging setup."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from revenue_core.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the stdout handler on first use.

    Later calls are no-ops so importing modules in any order yields a single
    handler and a consistent line format.
    """

    global _configured
    if _configured:
        return

    resolved_level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=resolved_level, format=LOG_FORMAT, stream=sys.stdout)
    # APScheduler logs every job execution at INFO.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
