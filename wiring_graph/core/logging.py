"""Structured logging configuration."""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

from .config import Settings, settings as default_settings


def configure_logging(config: Optional[Settings] = None) -> None:
    """Configure structured logging."""
    config = config or default_settings
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, config.log_level.upper(), logging.INFO),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.is_production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)


@contextmanager
def log_stage(logger: structlog.stdlib.BoundLogger, stage: str, **context) -> Iterator[None]:
    """Log start, completion and failure of a pipeline stage with timing."""
    start_time = time.perf_counter()
    logger.debug("stage_started", stage=stage, **context)

    try:
        yield
    except Exception as e:
        logger.error(
            "stage_failed",
            stage=stage,
            error_type=type(e).__name__,
            error=str(e),
            duration_seconds=round(time.perf_counter() - start_time, 6),
            **context,
        )
        raise

    logger.info(
        "stage_completed",
        stage=stage,
        duration_seconds=round(time.perf_counter() - start_time, 6),
        **context,
    )
