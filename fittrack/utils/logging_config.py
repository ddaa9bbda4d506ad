"""
Structured (JSON) logging configuration for the FitTrack API.

Copyright (C) 2025 FitTrack

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

import logging
import sys
from typing import Any

from pythonjsonlogger import jsonlogger

from ..config import get_settings

APPLICATION_NAME = "fittrack-api"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that stamps every record with the fields our log
    pipeline indexes on.
    """

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        if "message" not in log_record:
            log_record["message"] = record.getMessage()


def resolve_log_level(environment: str, configured: str | None) -> int:
    """
    Pick the effective log level.

    An explicit LOG_LEVEL wins; otherwise development logs at DEBUG and every
    other environment at INFO. Unknown names fall back to INFO.
    """
    level_name = (configured or "").upper()
    if not level_name:
        level_name = "DEBUG" if environment == "development" else "INFO"
    level = logging.getLevelName(level_name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """
    Configure structured JSON logging for the application.

    Called once from the application lifespan, before anything else logs.
    """
    settings = get_settings()
    environment = settings.ENVIRONMENT.lower()
    log_level = resolve_log_level(environment, settings.LOG_LEVEL)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicate logs
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            static_fields={
                "environment": environment,
                "application": APPLICATION_NAME,
            },
        )
    )
    root_logger.addHandler(console_handler)

    root_logger.info(
        "Structured logging configured",
        extra={
            "log_level": logging.getLevelName(log_level),
            "environment": environment,
        },
    )

    # Quiet down third-party loggers
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("fastapi").setLevel(logging.INFO)
    logging.getLogger("prisma").setLevel(logging.WARNING)
