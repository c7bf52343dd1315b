"""vista_guard.logging_utils

Logger construction: a rotating file under LOG_DIR plus the console.

Guard rejections are logged with a reason code and a SQL fingerprint; raw SQL
from untrusted sources is only logged at DEBUG.
"""

from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def build_logger(log_dir: str, name: str = "vista_guard", level: int = logging.INFO) -> logging.Logger:
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Building twice in one process must not double every line.
    if logger.handlers:
        return logger

    log_path = Path(log_dir) / "guard.log"
    handler = RotatingFileHandler(str(log_path), maxBytes=2_000_000, backupCount=5, encoding="utf-8")
    fmt = logging.Formatter(LOG_FORMAT)
    handler.setFormatter(fmt)
    logger.addHandler(handler)

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    logger.addHandler(console)
    return logger
