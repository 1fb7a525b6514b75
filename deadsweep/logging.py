"""Logging helpers shared by the deadsweep pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

_ROOT_LOGGER = "deadsweep"
_CONSOLE_FORMAT = "[deadsweep] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the ``deadsweep`` logger or one of its component children."""
    return logging.getLogger(f"{_ROOT_LOGGER}.{name}" if name else _ROOT_LOGGER)


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Install console (and optional file) handlers on the deadsweep logger.

    ``quiet`` wins over ``verbose`` and keeps only warnings and errors on the
    console. The log file, when given, always receives debug output.
    """
    console_level = logging.WARNING if quiet else logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = [
        _handler(logging.StreamHandler(), console_level, _CONSOLE_FORMAT)
    ]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG, _FILE_FORMAT)
        )

    logger = get_logger()
    # Repeated calls replace handlers instead of stacking them.
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if log_file is not None else console_level)
    logger.propagate = False
    return logger


def display_path(path: str | Path, root: str | Path | None = None) -> str:
    """Render ``path`` relative to ``root`` when possible, for log messages."""
    candidate = Path(path)
    if root is not None:
        try:
            return candidate.relative_to(Path(root)).as_posix()
        except ValueError:
            pass
    return candidate.as_posix()


__all__ = ["configure_logging", "display_path", "get_logger"]
