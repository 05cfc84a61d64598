"""
Logging Configuration for Superstore Sales Analytics

structlog renders every record, including records from libraries that log
through the standard library (SQLAlchemy, Prefect), so one batch run produces
a single stream in one format. Fields bound with batch_context are attached
to every record emitted inside the block.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import ProcessorFormatter, add_log_level

from superstore.config.settings import get_settings

# Libraries that are chatty at INFO; raised to WARNING unless the batch runs at DEBUG
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "urllib3")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure structured logging for a batch process.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR)
        log_format: Override renderer ("json" or "text")
    """
    settings = get_settings()
    level = (log_level or settings.monitoring.log_level).upper()
    fmt = log_format or settings.monitoring.log_format
    numeric_level = getattr(logging, level, logging.INFO)

    processors = _shared_processors()
    structlog.configure(
        processors=processors + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if fmt == "json":
        renderer = JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ProcessorFormatter(processor=renderer, foreign_pre_chain=processors))

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(numeric_level)

    # SQL statements are echoed through DATABASE_ECHO instead
    library_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    structlog.get_logger(__name__).debug(
        "Logging configured",
        level=level,
        format=fmt,
        environment=settings.app_env,
    )


@contextmanager
def batch_context(run_id: Optional[str] = None, **fields) -> Iterator[str]:
    """
    Bind a run id (and any extra fields) to every log record in the block.

    Yields:
        The run id, generated when not given
    """
    run_id = run_id or uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(run_id=run_id, **fields):
        yield run_id
