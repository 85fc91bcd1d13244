"""
Logging Configuration - Shared Layer

Structured logging for the reconciliation core. Engines and use cases log
through structlog bound loggers; the stdlib root logger only carries the
handlers so third-party libraries (pymongo) end up in the same stream.
"""

import logging
import os
import sys
from typing import Any, Dict, List, Optional

import structlog
from structlog.types import Processor

from forecast_recon.shared.consts import EnumEnvironment

# Libraries that are too chatty at DEBUG level.
NOISY_LOGGERS = ("pymongo", "pymongo.topology", "pymongo.connection")


def _env_logging_defaults() -> Dict[str, Optional[str]]:
    """Bootstrap values read before the settings object exists."""
    return {
        "level": os.environ.get("LOG_LEVEL", "INFO"),
        "file_path": os.environ.get("LOG_FILE_PATH"),
    }


def _shared_processors() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    level: Optional[str] = None,
    file_path: Optional[str] = None,
    environment: str = "development",
) -> None:
    """
    Configure structlog on top of the standard logging module.

    Args:
        level: Log level name; falls back to LOG_LEVEL, then INFO.
        file_path: Optional file that receives a copy of every record.
        environment: JSON output is used in production, a console
            renderer everywhere else.
    """
    defaults = _env_logging_defaults()
    log_level = (level or defaults["level"] or "INFO").upper()
    log_file = file_path or defaults["file_path"]
    numeric_level = getattr(logging, log_level, logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    renderer: Processor
    if environment.lower() == EnumEnvironment.PRODUCTION:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=_shared_processors(),
    )
    for handler in handlers:
        handler.setFormatter(formatter)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(numeric_level)

    if numeric_level <= logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.INFO)

    logging.info("Logging configured with level: %s", log_level)
    if log_file:
        logging.info("Logging to file: %s", log_file)


def update_logging_from_settings(settings: Any) -> None:
    """
    Reconfigure logging from the loaded application settings.

    Args:
        settings: `AppSettings` instance (or anything exposing the same
            `logging` and `environment` attributes).
    """
    try:
        level = settings.logging.level
        environment = settings.environment
        configure_logging(
            level=getattr(level, "value", level),
            file_path=settings.logging.file_path,
            environment=getattr(environment, "value", environment),
        )
        logging.info("Logging configuration updated from application settings")
    except AttributeError as e:
        logging.error("Failed to update logging from settings: %s", e)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger configured for the project."""
    return structlog.get_logger(name)
