"""Interfaces to the collaborators the statistics services read from.

Concrete implementations live with the persistence layer (SQL aggregates, an
HTTP client, an in-memory fake for tests). Implementations may return either
the pydantic models below or plain JSON-shaped dicts in camelCase or
snake_case; the services validate whatever comes back.
"""

from abc import ABC, abstractmethod
from typing import Any

from watchstats.statistics.models import (
    AbandonmentRiskStats,
    BingeWatchingStats,
    ContentDepthStats,
    ContentDiscoveryStats,
    DailyActivity,
    EpisodeWatchProgress,
    MilestoneCounts,
    MonthlyActivity,
    MovieStatistics,
    Profile,
    SeasonalViewingStats,
    ShowStatistics,
    TimeToWatchStats,
    UnairedContentStats,
    WatchingVelocityStats,
    WatchStreakStats,
    WeeklyActivity,
)

# Default look-back windows for activity timelines and watching velocity
DAILY_ACTIVITY_DAYS = 30
WEEKLY_ACTIVITY_WEEKS = 12
MONTHLY_ACTIVITY_MONTHS = 12
VELOCITY_WINDOW_DAYS = 30

Row = dict[str, Any]


class StatisticsDataSource(ABC):
    """Runs the raw aggregate queries behind each metric family."""

    @abstractmethod
    async def get_show_statistics(self, profile_id: int) -> ShowStatistics | Row:
        pass

    @abstractmethod
    async def get_movie_statistics(self, profile_id: int) -> MovieStatistics | Row:
        pass

    @abstractmethod
    async def get_watch_progress(self, profile_id: int) -> EpisodeWatchProgress | Row:
        pass

    @abstractmethod
    async def get_abandonment_risk_stats(self, profile_id: int) -> AbandonmentRiskStats | Row:
        pass

    @abstractmethod
    async def get_daily_activity(
        self, profile_id: int, days: int = DAILY_ACTIVITY_DAYS
    ) -> list[DailyActivity | Row]:
        pass

    @abstractmethod
    async def get_weekly_activity(
        self, profile_id: int, weeks: int = WEEKLY_ACTIVITY_WEEKS
    ) -> list[WeeklyActivity | Row]:
        pass

    @abstractmethod
    async def get_monthly_activity(
        self, profile_id: int, months: int = MONTHLY_ACTIVITY_MONTHS
    ) -> list[MonthlyActivity | Row]:
        pass

    @abstractmethod
    async def get_binge_watching_stats(self, profile_id: int) -> BingeWatchingStats | Row:
        pass

    @abstractmethod
    async def get_milestone_counts(self, profile_id: int) -> MilestoneCounts | Row:
        """Totals (episodes, movies, runtime minutes) and anniversary dates."""
        pass

    @abstractmethod
    async def get_watch_streak_stats(self, profile_id: int) -> WatchStreakStats | Row:
        pass

    @abstractmethod
    async def get_time_to_watch_stats(self, profile_id: int) -> TimeToWatchStats | Row:
        pass

    @abstractmethod
    async def get_unaired_content_stats(self, profile_id: int) -> UnairedContentStats | Row:
        pass

    @abstractmethod
    async def get_watching_velocity(
        self, profile_id: int, days: int = VELOCITY_WINDOW_DAYS
    ) -> WatchingVelocityStats | Row:
        """Episode pace, most active day and hour, and trend over the last ``days`` days."""
        pass

    @abstractmethod
    async def get_seasonal_viewing_stats(self, profile_id: int) -> SeasonalViewingStats | Row:
        pass

    @abstractmethod
    async def get_content_depth_stats(self, profile_id: int) -> ContentDepthStats | Row:
        pass

    @abstractmethod
    async def get_content_discovery_stats(self, profile_id: int) -> ContentDiscoveryStats | Row:
        pass


class ProfileDirectory(ABC):
    """Resolves the profiles that belong to an account."""

    @abstractmethod
    async def get_profiles_by_account_id(self, account_id: int) -> list[Profile | Row] | None:
        """Profiles of an account; empty or None when it has none."""
        pass
