"""Structured logging for the statistics services.

structlog runs on top of stdlib logging: JSON lines in production, coloured
console output in development. ``statistics_context`` binds the account,
profile and operation being computed to every event logged inside it, so
cache and error-reporter events carry the ids without passing them around.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.types import EventDict, Processor

from watchstats.config import Settings
from watchstats.config import settings as default_settings

SERVICE_NAME = "watchstats"


def add_log_level(_logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add log level to the event dict."""
    if method_name == "warn":
        # Structlog uses "warn", but we want "warning"
        event_dict["level"] = "warning"
    else:
        event_dict["level"] = method_name
    return event_dict


def add_service_name(_logger: logging.Logger, _method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def build_renderer(production: bool) -> Processor:
    """JSON for log aggregation in production, readable console output otherwise."""
    if production:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(config: Settings | None = None) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        config: Settings to read level and environment from. Uses global settings if None.
    """
    config = config or default_settings
    level = getattr(logging, config.log_level)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            build_renderer(config.is_production),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


@contextmanager
def statistics_context(**values: object) -> Iterator[None]:
    """Bind identifiers to every log event emitted inside the block.

    ``None`` values are skipped so optional ids can be passed straight through.
    Bindings are context-local and are inherited by tasks started inside the
    block (e.g. an ``asyncio.gather`` fan-out).

    Example:
        with statistics_context(account_id=12, operation="getAccountMilestoneStats"):
            ...
    """
    bound = {key: value for key, value in values.items() if value is not None}
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Optional logger name. If not provided, uses the caller's module name.

    Returns:
        Configured structlog logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("account_stats_merged", metric="milestone_stats", profile_count=3)
    """
    return structlog.get_logger(name)


# Configure logging on module import
configure_logging()
