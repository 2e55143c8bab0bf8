"""Structlog-based logging configuration for Audioscope.

Library modules log through the standard ``logging`` module; applications (the
CLI, or a host program embedding the session) call ``configure_structlog`` once
to route those records through structlog's renderers.

Output format:
- JSON when ``logging.json_logs`` is true, or when unset and stderr is not a TTY
- Colored console output otherwise
"""

import logging
import os
import sys
from collections.abc import Callable
from importlib import metadata
from typing import Any

import structlog

from audioscope.config import AudioscopeConfig


def get_package_version() -> str:
    """Installed version of the audioscope distribution, or 'unknown'."""
    try:
        return metadata.version("audioscope")
    except metadata.PackageNotFoundError:
        return "unknown"


def is_development_environment() -> bool:
    """Check if AUDIOSCOPE_ENV selects development mode."""
    return os.environ.get("AUDIOSCOPE_ENV", "production") == "development"


def _add_static_context(extra_fields: dict[str, str]) -> Callable:
    """Processor to add static context fields to all log entries."""

    def processor(
        logger: structlog.BoundLogger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.update(extra_fields)
        return event_dict

    return processor


def _use_json(config: AudioscopeConfig) -> bool:
    if config.logging.json_logs is not None:
        return config.logging.json_logs
    if is_development_environment():
        return os.environ.get("AUDIOSCOPE_JSON_LOGS", "false").lower() == "true"
    return not sys.stderr.isatty()


def _shared_processors(config: AudioscopeConfig) -> list:
    extra_fields = {
        "version": get_package_version(),
        **config.logging.extra_fields,
    }
    processors = [
        structlog.contextvars.merge_contextvars,
        _add_static_context(extra_fields),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]
    if config.logging.include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder())
    return processors


def configure_structlog(config: AudioscopeConfig) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        config: The AudioscopeConfig instance containing logging settings.
    """
    log_level = getattr(logging, config.logging.level.upper(), logging.INFO)
    shared = _shared_processors(config)
    renderer = (
        structlog.processors.JSONRenderer()
        if _use_json(config)
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(log_level)

    # stderr keeps stdout free for CLI output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logger = structlog.get_logger(__name__)
    logger.info(
        "Structured logging configured",
        version=get_package_version(),
        log_level=config.logging.level,
        json_output=config.logging.json_logs,
    )

