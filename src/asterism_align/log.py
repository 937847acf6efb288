"""Logging setup for the app and scripts.

Library modules only create loggers; handlers are attached here, once.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

from asterism_align.config import LOG_LEVEL_ENV

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the package logger once.

    Level precedence:
      - explicit `level` arg
      - env ASTERISM_ALIGN_LOG_LEVEL (e.g., DEBUG/INFO/WARNING)
      - default INFO
    """
    pkg_logger = logging.getLogger("asterism_align")
    if getattr(pkg_logger, "_asterism_configured", False):
        return

    lvl_name = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    lvl = logging.getLevelName(lvl_name)
    if not isinstance(lvl, int):
        lvl = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(lvl)
    pkg_logger._asterism_configured = True  # type: ignore[attr-defined]


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace; ensures it is configured."""
    setup_logging()
    if not name.startswith("asterism_align"):
        name = f"asterism_align.{name}"
    return logging.getLogger(name)
