"""
dupfinder - Configuration structlog.

Structured logging for scans: JSON lines for pipelines, console output
for interactive runs. Log lines always go to stderr; stdout carries the
duplicate listing.

Usage:
    from dupfinder.config.logging import configure_logging_from_env

    # At application start-up (flags win over LOG_LEVEL / LOG_FORMAT)
    configure_logging_from_env(level="DEBUG")

    # In modules
    import structlog
    logger = structlog.get_logger(__name__)
    logger.info("dupfinder_scan_started", roots=[...])
"""

import logging
import os
import sys
from pathlib import PurePath
from typing import Optional

import structlog
from structlog.types import EventDict, WrappedLogger

from dupfinder.config.exceptions import ConfigError

APP_NAME = "dupfinder"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("json", "console")
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"


def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application context to every log line.

    Adds:
    - app: "dupfinder"
    - environment: value of DUPFINDER_ENV (default "development")
    """
    event_dict["app"] = APP_NAME
    event_dict["environment"] = os.getenv("DUPFINDER_ENV", "development")
    return event_dict


def render_paths(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render Path values (and lists of them) as plain strings for the JSON renderer."""
    for key, value in event_dict.items():
        if isinstance(value, PurePath):
            event_dict[key] = str(value)
        elif isinstance(value, (list, tuple)) and any(isinstance(item, PurePath) for item in value):
            event_dict[key] = [str(item) for item in value]
    return event_dict


def resolve_level(level: str) -> int:
    """
    Map a level name to its logging constant.

    Raises:
        ConfigError: If the name is not one of LOG_LEVELS
    """
    name = level.strip().upper()
    if name not in LOG_LEVELS:
        raise ConfigError(f"Unknown log level {level!r} (expected one of {', '.join(LOG_LEVELS)})")
    return getattr(logging, name)


def configure_logging(
    level: str = DEFAULT_LOG_LEVEL,
    json_format: bool = False,
    enable_colors: bool = False,
) -> None:
    """
    Configure structlog for dupfinder.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, JSON lines. If False, human-readable
        enable_colors: If True, colourise console output

    Raises:
        ConfigError: If level is unknown
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=resolve_level(level),
        force=True,
    )

    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        render_paths,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=enable_colors))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_logging_from_env(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    environ: Optional[dict[str, str]] = None,
) -> None:
    """
    Configure logging from explicit values, else LOG_LEVEL / LOG_FORMAT.

    Args:
        level: Overrides LOG_LEVEL (default INFO)
        log_format: "json" or "console", overrides LOG_FORMAT (default console)
        environ: Environment mapping (default: os.environ)

    Raises:
        ConfigError: If the level or format is unknown
    """
    env = os.environ if environ is None else environ
    level = level or env.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL
    log_format = (log_format or env.get("LOG_FORMAT") or DEFAULT_LOG_FORMAT).strip().lower()
    if log_format not in LOG_FORMATS:
        raise ConfigError(f"Unknown log format {log_format!r} (expected json or console)")

    configure_logging(level=level, json_format=log_format == "json")
