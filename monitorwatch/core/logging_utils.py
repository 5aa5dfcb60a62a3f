"""Logging setup: rotating file under LOG_DIR plus stdout."""
from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", log_dir: str | None = "logs") -> logging.Logger:
    """Attach handlers to the `monitorwatch` logger once; later calls only adjust the level."""
    logger = logging.getLogger("monitorwatch")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    fmt = logging.Formatter(_FORMAT, datefmt=_DATEFMT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(fmt)
    logger.addHandler(console)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handler = RotatingFileHandler(
            os.path.join(log_dir, "monitorwatch.log"),
            maxBytes=2_000_000,
            backupCount=3,
        )
        handler.setFormatter(fmt)
        logger.addHandler(handler)

    return logger
