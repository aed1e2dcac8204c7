"""Structured logging configuration for wgslbuild.

Uses structlog for structured build logs.

Architecture:
    This module configures BOTH structlog and stdlib logging to emit
    consistent output (JSON or console). It uses ProcessorFormatter
    to route stdlib log records through structlog's processor chain,
    so third-party extensions using logging.getLogger(__name__) produce
    the same output format as modules using structlog.get_logger().
"""

import logging
import os
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Environment variable consulted when no explicit level is passed
LOG_LEVEL_ENV_VAR = "WGSLBUILD_LOG_LEVEL"

# Loggers that are too chatty at DEBUG for build output
_NOISY_LOGGERS: tuple[str, ...] = (
    "pluggy",
    "dynaconf",
    "urllib3",
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Remove internal structlog fields from output.

    ProcessorFormatter ALWAYS adds _record and _from_structlog when processing
    log records. These are internal bookkeeping and should not appear in output.
    """
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str | None = None,
) -> None:
    """Configure structlog and stdlib logging for builds.

    Args:
        json_output: If True, output JSON. If False, human-readable.
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to
            $WGSLBUILD_LOG_LEVEL, then INFO.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO")
    log_level = getattr(logging, level.upper())

    # Shared processors applied to ALL log records (structlog and stdlib).
    # No timestamps: build logs are read next to compiler output.
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Disable caching to allow reconfiguration in tests
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(log_level)

    # Never make noisy loggers less restrictive than the configured root level
    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Bound structlog logger.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
