"""Structured logging setup for sysmon.

The terminal belongs to the TUI, so log events only ever go to a JSON Lines
file. Without a file, they are dropped.
"""

import logging
import logging.handlers
from pathlib import Path

import structlog

LOG_MAX_BYTES = 1_000_000
LOG_BACKUP_COUNT = 2


def configure(log_path: str | Path | None = None, level: int = logging.INFO) -> None:
    """
    Route structlog through stdlib logging.

    Args:
        log_path: JSON Lines log file. None installs a NullHandler instead.
        level: Minimum level written to the file.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if log_path is None:
        root.addHandler(logging.NullHandler())
    else:
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=[
                    structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                    structlog.processors.add_log_level,
                ],
            )
        )
        root.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
