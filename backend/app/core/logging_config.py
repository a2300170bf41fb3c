"""
Structured logging configuration.

Stdlib logging and structlog share one output stream. In production (or with
LOG_FORMAT=json) every record is rendered as JSON for log aggregation; in
development records are rendered for the console.

Usage:
    from app.core.logging_config import setup_logging, get_logger

    # Once, at process start (API lifespan or Celery worker init)
    setup_logging()

    logger = get_logger(__name__)
    logger.info("recurring_sweep_started", execution_id="...", scope="all")
"""

import logging
import sys

import structlog
from pythonjsonlogger import jsonlogger

from app.config import settings


def _use_json() -> bool:
    return settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production"


def setup_logging() -> None:
    """
    Configure stdlib logging and structlog for the process.

    Safe to call more than once; later calls reconfigure in place.
    """
    use_json = _use_json()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        force=True,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ],
        ),
    ]

    if use_json:
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

    _configure_stdlib_json(use_json)

    if settings.ENVIRONMENT == "production":
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def _configure_stdlib_json(use_json: bool = False) -> None:
    """Render uvicorn and celery stdlib records as JSON when structured output is on."""
    if not use_json:
        return

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level"},
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error", "celery", "celery.task"]:
        logger = logging.getLogger(logger_name)
        logger.handlers.clear()
        logger.addHandler(handler)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Structured logger with context support
    """
    return structlog.get_logger(name)


def log_celery_task(
    logger: structlog.stdlib.BoundLogger,
    task_name: str,
    task_id: str,
    status: str,
    duration_ms: float = 0,
    **kwargs,
) -> None:
    """Log Celery task execution."""
    logger.info(
        "celery_task",
        task_name=task_name,
        task_id=task_id,
        status=status,
        duration_ms=duration_ms,
        **kwargs,
    )
