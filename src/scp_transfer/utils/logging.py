"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"

_LOGGING_CONFIGURED = False


def configure_logging(verbose: bool = False) -> None:
    """Configure the root logger once; ``verbose`` switches to DEBUG."""
    global _LOGGING_CONFIGURED
    level = logging.DEBUG if verbose else logging.WARNING
    if _LOGGING_CONFIGURED:
        logging.getLogger().setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # paramiko 的 transport 日志在 DEBUG 下过于冗长
    logging.getLogger("paramiko").setLevel(logging.INFO if verbose else logging.WARNING)
    _LOGGING_CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)
