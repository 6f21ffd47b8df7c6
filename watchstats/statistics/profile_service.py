"""Profile-level statistics.

Each metric family is cached independently under ``profile_{id}_{metric}``
(watching velocity adds its window: ``profile_{id}_watching_velocity_{days}``).
On a miss the data source is queried, the result validated into its model,
stored and returned; on a hit the stored object is returned as is.

Usage:
    service = ProfileStatisticsService(data_source, cache)
    streaks = await service.get_watch_streak_stats(profile_id=7)
"""

import asyncio
import math
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel

from watchstats.config import settings
from watchstats.logger import statistics_context
from watchstats.statistics.cache import CacheService, profile_key
from watchstats.statistics.errors import ErrorReporter, require_id
from watchstats.statistics.milestones import calculate_all_milestones, detect_recent_achievements
from watchstats.statistics.models import (
    AbandonmentRiskStats,
    ActivityTimeline,
    BingeWatchingStats,
    ContentDepthStats,
    ContentDiscoveryStats,
    DailyActivity,
    EpisodeWatchProgress,
    MilestoneCounts,
    MilestoneStats,
    MilestoneType,
    MonthlyActivity,
    MovieStatistics,
    ProfileStatistics,
    SeasonalViewingStats,
    ShowStatistics,
    StatisticsMetric,
    TimeToWatchStats,
    UnairedContentStats,
    WatchingVelocityStats,
    WatchStreakStats,
    WeeklyActivity,
)
from watchstats.statistics.sources import VELOCITY_WINDOW_DAYS, StatisticsDataSource

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")


class ProfileStatisticsService:
    """Computes and caches the statistics families of a single profile."""

    def __init__(
        self,
        data_source: StatisticsDataSource,
        cache: CacheService,
        error_reporter: ErrorReporter | None = None,
        ttl: int | None = None,
    ):
        """Initialize profile statistics service.

        Args:
            data_source: Aggregate query collaborator
            cache: Cache shared with the account-level service
            error_reporter: Error reporter. Uses a new ErrorReporter if None.
            ttl: Cache TTL in seconds. Uses settings.profile_stats_ttl if None.
        """
        self._data_source = data_source
        self._cache = cache
        self._errors = error_reporter or ErrorReporter()
        self._ttl = ttl if ttl is not None else settings.profile_stats_ttl

    @property
    def ttl(self) -> int:
        return self._ttl

    async def _cached(
        self,
        operation: str,
        profile_id: int,
        metric: StatisticsMetric,
        compute: Callable[[], Awaitable[T]],
        window: int | None = None,
    ) -> T:
        require_id(profile_id, "profile id")
        label = f"{operation}({profile_id})" if window is None else f"{operation}({profile_id}, {window})"
        with statistics_context(profile_id=profile_id, operation=operation, window=window):
            try:
                key = profile_key(profile_id, metric, window)
                return await self._cache.get_or_set(key, compute, self._ttl)
            except Exception as e:
                reported = self._errors.handle_error(e, label)
                if reported is e:
                    raise
                raise reported from e

    def _validate(self, model: type[ModelT], value: Any, profile_id: int) -> ModelT:
        value = self._errors.assert_exists(value, "Profile statistics", profile_id)
        if isinstance(value, model):
            return value
        return model.model_validate(value)

    # =========================================================================
    # Metric Families
    # =========================================================================

    async def get_profile_statistics(self, profile_id: int) -> ProfileStatistics:
        """Get show, movie and episode watch-progress statistics for a profile.

        The three sub-queries run concurrently.
        """

        async def compute() -> ProfileStatistics:
            show_stats, movie_stats, watch_progress = await asyncio.gather(
                self._data_source.get_show_statistics(profile_id),
                self._data_source.get_movie_statistics(profile_id),
                self._data_source.get_watch_progress(profile_id),
            )
            return ProfileStatistics(
                profile_id=profile_id,
                show_statistics=self._validate(ShowStatistics, show_stats, profile_id),
                movie_statistics=self._validate(MovieStatistics, movie_stats, profile_id),
                episode_watch_progress=self._validate(EpisodeWatchProgress, watch_progress, profile_id),
            )

        return await self._cached("getProfileStatistics", profile_id, StatisticsMetric.STATISTICS, compute)

    async def get_abandonment_risk_stats(self, profile_id: int) -> AbandonmentRiskStats:
        """Get shows at risk of being abandoned and the profile's abandonment rate."""

        async def compute() -> AbandonmentRiskStats:
            raw = await self._data_source.get_abandonment_risk_stats(profile_id)
            return self._validate(AbandonmentRiskStats, raw, profile_id)

        return await self._cached(
            "getAbandonmentRiskStats", profile_id, StatisticsMetric.ABANDONMENT_RISK, compute
        )

    async def get_activity_timeline(self, profile_id: int) -> ActivityTimeline:
        """Get daily (30 days), weekly (12 weeks) and monthly (12 months) activity."""

        async def compute() -> ActivityTimeline:
            daily, weekly, monthly = await asyncio.gather(
                self._data_source.get_daily_activity(profile_id),
                self._data_source.get_weekly_activity(profile_id),
                self._data_source.get_monthly_activity(profile_id),
            )
            return ActivityTimeline(
                daily_activity=[self._validate(DailyActivity, row, profile_id) for row in daily or []],
                weekly_activity=[self._validate(WeeklyActivity, row, profile_id) for row in weekly or []],
                monthly_activity=[self._validate(MonthlyActivity, row, profile_id) for row in monthly or []],
            )

        return await self._cached(
            "getActivityTimeline", profile_id, StatisticsMetric.ACTIVITY_TIMELINE, compute
        )

    async def get_binge_watching_stats(self, profile_id: int) -> BingeWatchingStats:
        """Get binge sessions (3+ episodes of a show within 24 hours)."""

        async def compute() -> BingeWatchingStats:
            raw = await self._data_source.get_binge_watching_stats(profile_id)
            return self._validate(BingeWatchingStats, raw, profile_id)

        return await self._cached(
            "getBingeWatchingStats", profile_id, StatisticsMetric.BINGE_WATCHING, compute
        )

    async def get_milestone_stats(self, profile_id: int) -> MilestoneStats:
        """Get watch totals, milestone progress and recent achievements.

        Milestones are derived from the totals with the standard thresholds;
        the data source only supplies counts.
        """

        async def compute() -> MilestoneStats:
            raw = await self._data_source.get_milestone_counts(profile_id)
            counts = self._validate(MilestoneCounts, raw, profile_id)
            stats = build_milestone_stats(counts)
            logger.debug(
                "profile_milestones_computed",
                achieved=sum(1 for m in stats.milestones if m.achieved),
                recent_achievements=len(stats.recent_achievements),
            )
            return stats

        return await self._cached("getMilestoneStats", profile_id, StatisticsMetric.MILESTONES, compute)

    async def get_watch_streak_stats(self, profile_id: int) -> WatchStreakStats:
        """Get consecutive-day watch streaks."""

        async def compute() -> WatchStreakStats:
            raw = await self._data_source.get_watch_streak_stats(profile_id)
            return self._validate(WatchStreakStats, raw, profile_id)

        return await self._cached("getWatchStreakStats", profile_id, StatisticsMetric.WATCH_STREAK, compute)

    async def get_time_to_watch_stats(self, profile_id: int) -> TimeToWatchStats:
        """Get days-to-start, days-to-complete, fastest completions and backlog aging."""

        async def compute() -> TimeToWatchStats:
            raw = await self._data_source.get_time_to_watch_stats(profile_id)
            return self._validate(TimeToWatchStats, raw, profile_id)

        return await self._cached("getTimeToWatchStats", profile_id, StatisticsMetric.TIME_TO_WATCH, compute)

    async def get_unaired_content_stats(self, profile_id: int) -> UnairedContentStats:
        """Get counts of shows, seasons, episodes and movies awaiting release."""

        async def compute() -> UnairedContentStats:
            raw = await self._data_source.get_unaired_content_stats(profile_id)
            return self._validate(UnairedContentStats, raw, profile_id)

        return await self._cached(
            "getUnairedContentStats", profile_id, StatisticsMetric.UNAIRED_CONTENT, compute
        )

    async def get_watching_velocity(
        self, profile_id: int, days: int = VELOCITY_WINDOW_DAYS
    ) -> WatchingVelocityStats:
        """Get episode pace and most active day/hour over the last ``days`` days.

        Each window is cached separately (``profile_{id}_watching_velocity_{days}``).

        Raises:
            StatisticsValidationError: If ``days`` is not a positive integer
        """
        require_id(days, "days")

        async def compute() -> WatchingVelocityStats:
            raw = await self._data_source.get_watching_velocity(profile_id, days)
            return self._validate(WatchingVelocityStats, raw, profile_id)

        return await self._cached(
            "getWatchingVelocity", profile_id, StatisticsMetric.WATCHING_VELOCITY, compute, window=days
        )

    async def get_seasonal_viewing_stats(self, profile_id: int) -> SeasonalViewingStats:
        """Get episodes watched by month and season, with peak and slowest month."""

        async def compute() -> SeasonalViewingStats:
            raw = await self._data_source.get_seasonal_viewing_stats(profile_id)
            return self._validate(SeasonalViewingStats, raw, profile_id)

        return await self._cached(
            "getSeasonalViewingStats", profile_id, StatisticsMetric.SEASONAL_VIEWING, compute
        )

    async def get_content_depth_stats(self, profile_id: int) -> ContentDepthStats:
        async def compute() -> ContentDepthStats:
            raw = await self._data_source.get_content_depth_stats(profile_id)
            return self._validate(ContentDepthStats, raw, profile_id)

        return await self._cached("getContentDepthStats", profile_id, StatisticsMetric.CONTENT_DEPTH, compute)

    async def get_content_discovery_stats(self, profile_id: int) -> ContentDiscoveryStats:
        """Get content addition rates and watch-to-add ratios."""

        async def compute() -> ContentDiscoveryStats:
            raw = await self._data_source.get_content_discovery_stats(profile_id)
            return self._validate(ContentDiscoveryStats, raw, profile_id)

        return await self._cached(
            "getContentDiscoveryStats", profile_id, StatisticsMetric.CONTENT_DISCOVERY, compute
        )


def build_milestone_stats(counts: MilestoneCounts) -> MilestoneStats:
    """Derive milestone statistics from raw totals."""
    hours = math.floor(counts.total_runtime_minutes / 60 + 0.5)
    milestones = calculate_all_milestones(counts.total_episodes_watched, counts.total_movies_watched, hours)
    recent = detect_recent_achievements(
        {
            MilestoneType.EPISODES: counts.total_episodes_watched,
            MilestoneType.MOVIES: counts.total_movies_watched,
            MilestoneType.HOURS: hours,
        },
        milestones,
    )

    def _iso(value) -> str | None:
        return value.isoformat() if value is not None else None

    return MilestoneStats(
        total_episodes_watched=counts.total_episodes_watched,
        total_movies_watched=counts.total_movies_watched,
        total_hours_watched=hours,
        profile_created_at=_iso(counts.profile_created_at),
        first_episode_watched_at=_iso(counts.first_episode_watched_at),
        first_movie_watched_at=_iso(counts.first_movie_watched_at),
        milestones=milestones,
        recent_achievements=recent,
    )
