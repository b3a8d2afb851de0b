"""
Log output for the DraftPulse engines.

Engine modules log snake_case events through `structlog.get_logger(__name__)`.
Records from plain stdlib loggers (SQLAlchemy, the host app) pass through
the same processor chain, so one stderr stream carries both.

Set DRAFTPULSE_DEV_MODE=1 for colored console lines; anything else emits
one JSON object per event. LOG_LEVEL picks the root level.

Usage:
    from draftpulse.lib.logging import setup_logging

    setup_logging(log_level="DEBUG")
"""

import logging
import os
import sys

import structlog

DEV_MODE_ENV = "DRAFTPULSE_DEV_MODE"
LOG_LEVEL_ENV = "LOG_LEVEL"


def _event_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(dev_mode: bool) -> structlog.types.Processor:
    if dev_mode:
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(dev_mode: bool | None = None, log_level: str | None = None) -> None:
    """
    Route structlog and stdlib records to a single stderr handler.

    Replaces any handlers already on the root logger, so calling it twice
    leaves one handler. Unknown level names fall back to INFO.

    Args:
        dev_mode: Console output instead of JSON; read from DRAFTPULSE_DEV_MODE when None
        log_level: Root level name, case-insensitive; read from LOG_LEVEL when None
    """
    if dev_mode is None:
        dev_mode = os.environ.get(DEV_MODE_ENV) == "1"
    level_name = (log_level or os.environ.get(LOG_LEVEL_ENV, "INFO")).upper()

    structlog.configure(
        processors=[
            *_event_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(dev_mode),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    # Statement echo only above INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
