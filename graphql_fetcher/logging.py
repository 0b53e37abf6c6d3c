"""
Logging configuration for graphql_fetcher.

This module provides a logging setup helper, a filter masking credentials
in log messages and a structured JSON formatter.
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern

from pydantic import BaseModel, Field

PACKAGE_LOGGER = "graphql_fetcher"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Package logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    enable_structured: bool = Field(
        default=False, description="Enable structured JSON logging"
    )
    mask_sensitive_data: bool = Field(
        default=True, description="Mask tokens and credentials in messages"
    )
    component_levels: Dict[str, LogLevel] = Field(
        default_factory=dict, description="Per-module log levels, e.g. {'negotiation': 'DEBUG'}"
    )


class SensitiveDataFilter(logging.Filter):
    """Filter to mask sensitive data in log messages."""

    def __init__(self) -> None:
        super().__init__()

        self.patterns: List[Pattern[str]] = [
            re.compile(r"(bearer\s+)([a-zA-Z0-9._\-+/=]{8,})", re.IGNORECASE),
            re.compile(
                r'(authorization["\']?\s*[:=]\s*["\']?)([^\s"\',}]+)', re.IGNORECASE
            ),
            re.compile(
                r'((?:api[_-]?key|token|secret)["\']?\s*[:=]\s*["\']?)([^\s"\',}&]+)',
                re.IGNORECASE,
            ),
            re.compile(r"(https?://[^:/\s]+):([^@/\s]+)@", re.IGNORECASE),
        ]
        self.replacements = [
            r"\1***MASKED***",
            r"\1***MASKED***",
            r"\1***MASKED***",
            r"\1:***MASKED***@",
        ]

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        for pattern, replacement in zip(self.patterns, self.replacements):
            message = pattern.sub(replacement, message)
        record.msg = message
        record.args = ()
        return True


# Fields attached through ``extra=`` by the negotiation and transport logs
CONTEXT_FIELDS = ("operation", "step", "method", "url")


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.

    Dispatch context passed as ``extra`` (operation name, negotiation step,
    HTTP method and URL) is emitted as top-level keys when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(config: Optional[LoggingConfig] = None, stream=None) -> logging.Logger:
    """
    Configure the ``graphql_fetcher`` logger.

    Only the package logger is touched; the root logger and the host
    application's handlers are left alone. Calling it again replaces the
    handler installed by the previous call.

    Args:
        config: Logging configuration
        stream: Stream for the console handler (defaults to stderr)

    Returns:
        The configured package logger
    """
    config = config if config is not None else LoggingConfig()
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, LogLevel(config.level).value))

    for handler in list(logger.handlers):
        if getattr(handler, "_graphql_fetcher", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler._graphql_fetcher = True  # type: ignore[attr-defined]
    if config.enable_structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(config.format))
    if config.mask_sensitive_data:
        handler.addFilter(SensitiveDataFilter())
    logger.addHandler(handler)

    for component, level in config.component_levels.items():
        logging.getLogger(f"{PACKAGE_LOGGER}.{component}").setLevel(
            getattr(logging, LogLevel(level).value)
        )

    return logger
