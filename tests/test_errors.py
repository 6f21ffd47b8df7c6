"""Tests for statistics errors and the error reporter."""

import pytest

from watchstats.statistics.errors import (
    CacheUnavailableError,
    ErrorReporter,
    StatisticsDependencyError,
    StatisticsError,
    StatisticsNotFoundError,
    StatisticsValidationError,
    require_id,
)


class TestExceptionHierarchy:
    """Tests for the exception classes."""

    def test_all_inherit_from_base(self):
        for error_class in (
            StatisticsValidationError,
            StatisticsNotFoundError,
            StatisticsDependencyError,
            CacheUnavailableError,
        ):
            assert issubclass(error_class, StatisticsError)

    def test_cache_unavailable_is_dependency_error(self):
        assert issubclass(CacheUnavailableError, StatisticsDependencyError)

    def test_message_and_context(self):
        error = StatisticsNotFoundError("Profile with ID 3 not found", context="getMilestoneStats(3)")

        assert str(error) == "Profile with ID 3 not found"
        assert error.message == "Profile with ID 3 not found"
        assert error.context == "getMilestoneStats(3)"


class TestErrorReporter:
    """Tests for ErrorReporter.handle_error."""

    def test_wraps_foreign_error(self):
        reporter = ErrorReporter()
        original = TimeoutError("query timed out")

        reported = reporter.handle_error(original, "getAccountBingeWatchingStats(12)")

        assert isinstance(reported, StatisticsDependencyError)
        assert reported.context == "getAccountBingeWatchingStats(12)"
        assert str(reported) == "Error in getAccountBingeWatchingStats(12): query timed out"

    def test_statistics_error_passes_through(self):
        reporter = ErrorReporter()
        original = StatisticsValidationError("No profiles found for account 12")

        reported = reporter.handle_error(original, "getAccountStatistics(12)")

        assert reported is original
        assert reported.context == "getAccountStatistics(12)"

    def test_inner_context_is_kept(self):
        reporter = ErrorReporter()
        original = StatisticsNotFoundError("missing", context="getMilestoneStats(4)")

        reported = reporter.handle_error(original, "getAccountMilestoneStats(12)")

        assert reported is original
        assert reported.context == "getMilestoneStats(4)"

    def test_assert_exists_returns_entity(self):
        reporter = ErrorReporter()
        entity = {"total": 0}
        assert reporter.assert_exists(entity, "Profile statistics", 3) is entity

    def test_assert_exists_keeps_falsy_entities(self):
        reporter = ErrorReporter()
        assert reporter.assert_exists([], "Activity", 3) == []

    def test_assert_exists_raises_not_found(self):
        reporter = ErrorReporter()

        with pytest.raises(StatisticsNotFoundError, match="Profile statistics with ID 3 not found"):
            reporter.assert_exists(None, "Profile statistics", 3)


class TestRequireId:
    """Tests for require_id."""

    def test_valid_id(self):
        assert require_id(12, "account id") == 12

    @pytest.mark.parametrize("value", [0, -5, None, "12", 1.5, False, True])
    def test_invalid_id(self, value):
        with pytest.raises(StatisticsValidationError, match="Invalid account id"):
            require_id(value, "account id")
