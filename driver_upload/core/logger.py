from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

HOME_ENV = "DRIVER_UPLOAD_HOME"

_LOGGER: logging.Logger | None = None


def _work_dir() -> Path:
    env = os.getenv(HOME_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / "DriverUpload"


def get_logger(log_dir: Path | None = None) -> logging.Logger:
    """Return the application logger writing to <work dir>/logs/app.log.

    Creates the directory if needed. Console output goes to stderr and only
    carries warnings, stdout is reserved for run progress.
    """
    global _LOGGER
    if _LOGGER is not None:
        return _LOGGER

    base = Path(log_dir) if log_dir is not None else _work_dir() / "logs"
    base.mkdir(parents=True, exist_ok=True)
    log_path = base / "app.log"

    logger = logging.getLogger("driver_upload")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_path, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8")
    file_handler.setFormatter(fmt)
    logger.addHandler(file_handler)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(fmt)
    console.setLevel(logging.WARNING)
    logger.addHandler(console)

    _LOGGER = logger
    return logger


def reset_logger() -> None:
    """Drop the cached logger so the next call reconfigures handlers."""
    global _LOGGER
    _LOGGER = None
