"""
Logging setup for hash_hound.

* structlog for key/value events, rendered through stdlib logging.
* Console handler on stderr, or a buffering handler whose records are
  drawn in the live UI's log panel while rich owns the terminal.
* Optional daily-rotating file handler.

Call `setup_logging` once, from the CLI entry point.
"""
from __future__ import annotations

import logging
import logging.handlers
import pathlib
from collections import deque
from datetime import datetime
from typing import Optional

import structlog

LOG_BUFFER: deque[tuple[int, str]] = deque(maxlen=5000)

_LEVEL = {
    "CRITICAL": logging.CRITICAL,
    "ERROR":    logging.ERROR,
    "WARNING":  logging.WARNING,
    "INFO":     logging.INFO,
    "DEBUG":    logging.DEBUG,
}

FMT = "%(asctime)s  %(levelname)s  %(message)s"
DATEFMT = "%H:%M:%S"


class UILogHandler(logging.Handler):
    def emit(self, record):
        msg = self.format(record)
        LOG_BUFFER.append((record.levelno, msg))


def get_ui_log_handler() -> UILogHandler:
    uih = UILogHandler()
    uih.setFormatter(logging.Formatter(FMT, DATEFMT))
    return uih


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[pathlib.Path | str] = None,
    ui: bool = False,
) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(_LEVEL[level.upper()])

    if ui:
        root.addHandler(get_ui_log_handler())
    else:
        con = logging.StreamHandler()
        con.setFormatter(logging.Formatter(FMT, DATEFMT))
        root.addHandler(con)

    # ── file (rotates at midnight, keeps 7 days) ───────────────────────────────
    if log_dir is not None:
        log_dir = pathlib.Path(log_dir).resolve()
        log_dir.mkdir(parents=True, exist_ok=True)
        file_h = logging.handlers.TimedRotatingFileHandler(
            filename=log_dir / f"hash-hound-{datetime.now():%Y-%m-%d}.log",
            when="midnight",
            backupCount=7,
            encoding="utf-8",
        )
        file_h.setFormatter(logging.Formatter(FMT, DATEFMT))
        root.addHandler(file_h)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(
                key_order=["logger", "event"], drop_missing=True
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
