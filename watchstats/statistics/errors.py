"""Statistics error hierarchy and the central error reporter.

Every service wraps its work in ``try``/``except`` and raises whatever
``ErrorReporter.handle_error`` returns, so callers always see a
``StatisticsError`` labelled with the operation that failed.
"""

from typing import TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# Exceptions
# =============================================================================


class StatisticsError(Exception):
    """Base exception for statistics errors."""

    def __init__(self, message: str, context: str | None = None):
        self.message = message
        self.context = context
        super().__init__(message)


class StatisticsValidationError(StatisticsError):
    """Raised for a malformed id or an account without profiles."""

    pass


class StatisticsNotFoundError(StatisticsError):
    """Raised when an account or profile resolves to no data."""

    pass


class StatisticsDependencyError(StatisticsError):
    """Raised when the data source or a nested statistics call fails."""

    pass


class CacheUnavailableError(StatisticsDependencyError):
    """Raised when the cache backing store cannot be reached."""

    pass


# =============================================================================
# Error Reporter
# =============================================================================


class ErrorReporter:
    """Turns arbitrary failures into labelled statistics errors.

    Example:
        try:
            ...
        except Exception as e:
            raise reporter.handle_error(e, f"getBingeWatchingStats({profile_id})") from e
    """

    def handle_error(self, error: BaseException, context: str) -> StatisticsError:
        """Log an error and return the exception the caller should raise.

        Args:
            error: The failure that was caught
            context: Operation label, e.g. ``getAccountMilestoneStats(12)``

        Returns:
            The original error if it is already a StatisticsError,
            otherwise a StatisticsDependencyError wrapping it.
        """
        if isinstance(error, StatisticsError):
            if error.context is None:
                error.context = context
            if isinstance(error, StatisticsValidationError):
                logger.info("statistics_validation_failed", context=context, error=error.message)
            else:
                logger.warning(
                    "statistics_error",
                    context=context,
                    error_type=type(error).__name__,
                    error=error.message,
                )
            return error

        logger.error(
            "statistics_dependency_failed",
            context=context,
            error_type=type(error).__name__,
            error=str(error),
            exc_info=error,
        )
        return StatisticsDependencyError(f"Error in {context}: {error}", context=context)

    def assert_exists(self, entity: T | None, entity_name: str, entity_id: int | str) -> T:
        """Return ``entity`` or raise StatisticsNotFoundError when it is missing."""
        if entity is None:
            raise StatisticsNotFoundError(f"{entity_name} with ID {entity_id} not found")
        return entity


def require_id(value: object, name: str) -> int:
    """Validate that ``value`` is a positive integer id.

    Raises:
        StatisticsValidationError: If the id is missing, not an int, or not positive
    """
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise StatisticsValidationError(f"Invalid {name}: {value!r}")
    return value
