"""
MIT License

Lightweight logging helpers for gtfcounter.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

_LOGGER: Optional[logging.Logger] = None


def get_logger(name: str = "gtfcounter") -> logging.Logger:
    """Return a process-wide logger configured for CLI use."""
    global _LOGGER
    if _LOGGER is None:
        logger = logging.getLogger(name)
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(message)s", "%Y-%m-%dT%H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        _LOGGER = logger
    return _LOGGER


def set_verbosity(level: str) -> None:
    """Adjust the shared logger level from a CLI flag value."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    get_logger().setLevel(numeric)


__all__ = ["get_logger", "set_verbosity"]
