"""Account-level statistics.

An account view is built by resolving the account's profiles, fetching the
same metric for every profile concurrently through ProfileStatisticsService,
and merging the results with a metric-specific rule. Merged results are cached
under ``account_{id}_{metric}``, separately from the per-profile entries.

Merge rules do not depend on profile order except where noted (first-seen
tie-breaks and first-seen period order), so the fan-out runs concurrently.

Usage:
    service = AccountStatisticsService(profile_directory, profile_service, cache)
    binges = await service.get_account_binge_watching_stats(account_id=3)
"""

import asyncio
import math
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel

from watchstats.config import settings
from watchstats.logger import statistics_context
from watchstats.statistics.cache import CacheService, account_key
from watchstats.statistics.errors import ErrorReporter, StatisticsValidationError, require_id
from watchstats.statistics.milestones import calculate_all_milestones
from watchstats.statistics.models import (
    AbandonmentRiskStats,
    AccountEpisodeProgress,
    AccountStatistics,
    Achievement,
    ActivityTimeline,
    BacklogAging,
    BingedShow,
    BingeSession,
    BingeWatchingStats,
    ContentAdditionRate,
    ContentDepthStats,
    ContentDiscoveryStats,
    MilestoneStats,
    MovieStatistics,
    MovieWatchStatusCounts,
    Profile,
    ProfileStatistics,
    SeasonalViewingStats,
    ShowCompletion,
    ShowStatistics,
    ShowWatchStatusCounts,
    StatisticsMetric,
    StreakPeriod,
    TimeToWatchStats,
    UnairedContentStats,
    UniqueContentCounts,
    VelocityTrend,
    ViewingBySeason,
    WatchingVelocityStats,
    WatchStreakStats,
    WatchToAddRatio,
)
from watchstats.statistics.profile_service import ProfileStatisticsService
from watchstats.statistics.sources import VELOCITY_WINDOW_DAYS, ProfileDirectory

logger = structlog.get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")
ModelT = TypeVar("ModelT", bound=BaseModel)

ProfileResults = Sequence[tuple[Profile, T]]


# =============================================================================
# Helpers
# =============================================================================


def _round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


def _mean(values: Sequence[float]) -> float:
    return _round2(sum(values) / len(values)) if values else 0.0


def _percent(part: int, whole: int) -> int:
    return math.floor(part / whole * 100 + 0.5) if whole > 0 else 0


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _sum_counts(target: dict[str, int], source: dict[str, int]) -> None:
    for name, count in source.items():
        target[name] = target.get(name, 0) + count


# =============================================================================
# Merge Rules
# =============================================================================


def merge_account_statistics(results: ProfileResults[ProfileStatistics]) -> AccountStatistics:
    """Sum show, movie and episode counts; count unique shows and movies.

    Watch-progress percentages are recomputed from the summed counts,
    excluding unaired content from the denominator.
    """
    shows = ShowStatistics()
    show_counts = ShowWatchStatusCounts()
    movies = MovieStatistics()
    movie_counts = MovieWatchStatusCounts()
    episodes = AccountEpisodeProgress()
    unique_show_ids: set[int] = set()
    unique_movie_ids: set[int] = set()

    for _, stats in results:
        shows.total += stats.show_statistics.total
        for name, count in stats.show_statistics.watch_status_counts.model_dump().items():
            setattr(show_counts, name, getattr(show_counts, name) + count)
        _sum_counts(shows.genre_distribution, stats.show_statistics.genre_distribution)
        _sum_counts(shows.service_distribution, stats.show_statistics.service_distribution)

        movies.total += stats.movie_statistics.total
        for name, count in stats.movie_statistics.watch_status_counts.model_dump().items():
            setattr(movie_counts, name, getattr(movie_counts, name) + count)
        _sum_counts(movies.genre_distribution, stats.movie_statistics.genre_distribution)
        _sum_counts(movies.service_distribution, stats.movie_statistics.service_distribution)

        progress = stats.episode_watch_progress
        episodes.total_episodes += progress.total_episodes
        episodes.watched_episodes += progress.watched_episodes
        episodes.unaired_episodes += progress.unaired_episodes

        unique_show_ids.update(show.show_id for show in progress.shows_progress)
        unique_movie_ids.update(movie.id for movie in stats.movie_statistics.movie_references)

    shows.watch_status_counts = show_counts
    shows.watch_progress = _percent(show_counts.watched, shows.total - show_counts.unaired)
    movies.watch_status_counts = movie_counts
    movies.watch_progress = _percent(movie_counts.watched, movies.total - movie_counts.unaired)
    episodes.watch_progress = _percent(
        episodes.watched_episodes, episodes.total_episodes - episodes.unaired_episodes
    )

    return AccountStatistics(
        profile_count=len(results),
        unique_content=UniqueContentCounts(show_count=len(unique_show_ids), movie_count=len(unique_movie_ids)),
        show_statistics=shows,
        movie_statistics=movies,
        episode_statistics=episodes,
    )


def merge_abandonment_risk(results: ProfileResults[AbandonmentRiskStats]) -> AbandonmentRiskStats:
    """Unweighted mean of abandonment rates; every at-risk show, longest idle first."""
    shows_at_risk = [
        show.model_copy(update={"profile_name": profile.name})
        for profile, stats in results
        for show in stats.shows_at_risk
    ]
    shows_at_risk.sort(key=lambda show: show.days_since_last_watch, reverse=True)

    return AbandonmentRiskStats(
        shows_at_risk=shows_at_risk,
        show_abandonment_rate=_mean([stats.show_abandonment_rate for _, stats in results]),
    )


def _merge_periods(series: Iterable[Sequence[ModelT]], period_field: str) -> list[ModelT]:
    merged: dict[str, tuple[type[ModelT], dict[str, Any]]] = {}

    for entries in series:
        for entry in entries:
            data = entry.model_dump()
            period = data[period_field]
            if period not in merged:
                merged[period] = (type(entry), data)
                continue

            _, existing = merged[period]
            for name, value in data.items():
                if name != period_field and _is_number(value):
                    existing[name] = (existing.get(name) or 0) + value

    return [model.model_validate(data) for model, data in merged.values()]


def merge_activity_timelines(timelines: Sequence[ActivityTimeline]) -> ActivityTimeline:
    """Sum activity for matching periods; periods keep first-seen order."""
    return ActivityTimeline(
        daily_activity=_merge_periods((t.daily_activity for t in timelines), "date"),
        weekly_activity=_merge_periods((t.weekly_activity for t in timelines), "week_start"),
        monthly_activity=_merge_periods((t.monthly_activity for t in timelines), "month"),
    )


def merge_binge_watching(
    results: ProfileResults[BingeWatchingStats],
    top_shows_limit: int = 10,
) -> BingeWatchingStats:
    """Sum sessions, session-weighted episode average, longest session, top shows.

    ``average_episodes_per_binge`` is weighted by each profile's session count,
    so a profile with many binges counts for more than one with few.
    """
    total_sessions = 0
    total_episodes = 0.0
    longest = BingeSession()
    shows: dict[int, BingedShow] = {}

    for profile, stats in results:
        total_sessions += stats.binge_session_count
        total_episodes += stats.binge_session_count * stats.average_episodes_per_binge

        if stats.longest_binge_session.episode_count > longest.episode_count:
            longest = stats.longest_binge_session.model_copy(update={"profile_name": profile.name})

        for show in stats.top_binged_shows:
            if show.show_id in shows:
                shows[show.show_id].binge_session_count += show.binge_session_count
            else:
                shows[show.show_id] = show.model_copy()

    top_shows = sorted(shows.values(), key=lambda show: show.binge_session_count, reverse=True)

    return BingeWatchingStats(
        binge_session_count=total_sessions,
        average_episodes_per_binge=_round2(total_episodes / total_sessions) if total_sessions else 0.0,
        longest_binge_session=longest,
        top_binged_shows=top_shows[:top_shows_limit],
    )


def merge_milestones(
    results: ProfileResults[MilestoneStats],
    recent_achievements_limit: int = 10,
) -> MilestoneStats:
    """Sum totals and recompute milestones against the standard thresholds.

    Recent achievements from all profiles are combined, newest first.
    """
    episodes = sum(stats.total_episodes_watched for _, stats in results)
    movies = sum(stats.total_movies_watched for _, stats in results)
    hours = sum(stats.total_hours_watched for _, stats in results)

    achievements: list[Achievement] = [
        achievement.model_copy(update={"profile_name": profile.name})
        for profile, stats in results
        for achievement in stats.recent_achievements
    ]
    achievements.sort(key=lambda achievement: achievement.achieved_date, reverse=True)

    return MilestoneStats(
        total_episodes_watched=episodes,
        total_movies_watched=movies,
        total_hours_watched=hours,
        milestones=calculate_all_milestones(episodes, movies, hours),
        recent_achievements=achievements[:recent_achievements_limit],
    )


def merge_time_to_watch(
    results: ProfileResults[TimeToWatchStats],
    fastest_completions_limit: int = 10,
) -> TimeToWatchStats:
    """Unweighted mean days-to-start/complete, fastest completions, summed backlog."""
    completions: list[ShowCompletion] = [
        completion.model_copy(update={"profile_name": profile.name})
        for profile, stats in results
        for completion in stats.fastest_completions
    ]
    completions.sort(key=lambda completion: completion.days_to_complete)

    backlog = BacklogAging()
    for _, stats in results:
        backlog.unwatched_over_30_days += stats.backlog_aging.unwatched_over_30_days
        backlog.unwatched_over_90_days += stats.backlog_aging.unwatched_over_90_days
        backlog.unwatched_over_365_days += stats.backlog_aging.unwatched_over_365_days

    return TimeToWatchStats(
        average_days_to_start_show=_mean([stats.average_days_to_start_show for _, stats in results]),
        average_days_to_complete_show=_mean([stats.average_days_to_complete_show for _, stats in results]),
        fastest_completions=completions[:fastest_completions_limit],
        backlog_aging=backlog,
    )


def merge_watch_streaks(results: ProfileResults[WatchStreakStats]) -> WatchStreakStats:
    """Best current and longest streak across profiles; long-streak counts summed."""
    merged = WatchStreakStats()
    weighted_length = 0.0

    for _, stats in results:
        if stats.current_streak > merged.current_streak:
            merged.current_streak = stats.current_streak
            merged.current_streak_start_date = stats.current_streak_start_date

        if stats.longest_streak > merged.longest_streak:
            merged.longest_streak = stats.longest_streak
            merged.longest_streak_period = stats.longest_streak_period.model_copy()

        merged.streaks_over_7_days += stats.streaks_over_7_days
        weighted_length += stats.average_streak_length * stats.streaks_over_7_days

    if merged.streaks_over_7_days:
        merged.average_streak_length = _round2(weighted_length / merged.streaks_over_7_days)
    if not merged.longest_streak:
        merged.longest_streak_period = StreakPeriod()
    return merged


def merge_unaired_content(results: ProfileResults[UnairedContentStats]) -> UnairedContentStats:
    """Sum every unaired count."""
    merged = UnairedContentStats()
    for _, stats in results:
        merged.unaired_show_count += stats.unaired_show_count
        merged.unaired_season_count += stats.unaired_season_count
        merged.unaired_episode_count += stats.unaired_episode_count
        merged.unaired_movie_count += stats.unaired_movie_count
    return merged


def _heaviest(weights: dict[T, float], default: T) -> T:
    # max() keeps the first key on ties
    return max(weights, key=weights.__getitem__) if weights else default


def merge_watching_velocity(results: ProfileResults[WatchingVelocityStats]) -> WatchingVelocityStats:
    """Pace averages weighted by each profile's episodes per month.

    A profile with no episodes in the window still counts with weight 1. The
    most active day and hour are the ones carrying the most weight; the trend
    is the most common one across profiles.
    """
    if not results:
        return WatchingVelocityStats()

    weights = [stats.episodes_per_month or 1 for _, stats in results]
    total_weight = sum(weights)

    def weighted(field: str) -> float:
        return _round2(
            sum(getattr(stats, field) * weight for (_, stats), weight in zip(results, weights, strict=True))
            / total_weight
        )

    day_weights: dict[str, float] = {}
    hour_weights: dict[int, float] = {}
    trend_counts = dict.fromkeys(VelocityTrend, 0)
    for (_, stats), weight in zip(results, weights, strict=True):
        day_weights[stats.most_active_day] = day_weights.get(stats.most_active_day, 0) + weight
        hour_weights[stats.most_active_hour] = hour_weights.get(stats.most_active_hour, 0) + weight
        trend_counts[stats.velocity_trend] += 1

    return WatchingVelocityStats(
        episodes_per_week=weighted("episodes_per_week"),
        episodes_per_month=weighted("episodes_per_month"),
        average_episodes_per_day=weighted("average_episodes_per_day"),
        most_active_day=_heaviest(day_weights, "N/A"),
        most_active_hour=_heaviest(hour_weights, 0),
        velocity_trend=_heaviest(trend_counts, VelocityTrend.STABLE),
    )


def merge_seasonal_viewing(results: ProfileResults[SeasonalViewingStats]) -> SeasonalViewingStats:
    """Sum monthly and seasonal counts, then pick the peak and slowest month."""
    by_month: dict[str, int] = {}
    by_season = ViewingBySeason()

    for _, stats in results:
        _sum_counts(by_month, stats.viewing_by_month)
        for name, count in stats.viewing_by_season.model_dump().items():
            setattr(by_season, name, getattr(by_season, name) + count)

    return SeasonalViewingStats(
        viewing_by_month=by_month,
        viewing_by_season=by_season,
        peak_viewing_month=max(by_month, key=by_month.__getitem__) if by_month else "N/A",
        slowest_viewing_month=min(by_month, key=by_month.__getitem__) if by_month else "N/A",
    )


def merge_content_depth(results: ProfileResults[ContentDepthStats]) -> ContentDepthStats:
    """Unweighted mean episode count and runtime; distributions summed."""
    merged = ContentDepthStats(
        average_episode_count_per_show=_mean([stats.average_episode_count_per_show for _, stats in results]),
        average_movie_runtime=_mean([stats.average_movie_runtime for _, stats in results]),
    )
    for _, stats in results:
        _sum_counts(merged.release_year_distribution, stats.release_year_distribution)
        _sum_counts(merged.content_maturity_distribution, stats.content_maturity_distribution)
    return merged


def merge_content_discovery(results: ProfileResults[ContentDiscoveryStats]) -> ContentDiscoveryStats:
    """Most recent addition across profiles; unweighted mean rates and ratios."""
    if not results:
        return ContentDiscoveryStats()

    return ContentDiscoveryStats(
        days_since_last_content_added=min(stats.days_since_last_content_added for _, stats in results),
        content_addition_rate=ContentAdditionRate(
            shows_per_month=_mean([stats.content_addition_rate.shows_per_month for _, stats in results]),
            movies_per_month=_mean([stats.content_addition_rate.movies_per_month for _, stats in results]),
        ),
        watch_to_add_ratio=WatchToAddRatio(
            shows=_mean([stats.watch_to_add_ratio.shows for _, stats in results]),
            movies=_mean([stats.watch_to_add_ratio.movies for _, stats in results]),
        ),
    )


# =============================================================================
# Account Statistics Service
# =============================================================================


class AccountStatisticsService:
    """Rolls every profile of an account into one cached account view."""

    def __init__(
        self,
        profile_directory: ProfileDirectory,
        profile_statistics: ProfileStatisticsService,
        cache: CacheService,
        error_reporter: ErrorReporter | None = None,
        ttl: int | None = None,
        recent_achievements_limit: int | None = None,
        top_binged_shows_limit: int | None = None,
        fastest_completions_limit: int | None = None,
    ):
        """Initialize account statistics service.

        Args:
            profile_directory: Resolves an account's profiles
            profile_statistics: Per-profile statistics (sharing ``cache``)
            cache: Cache shared with the profile-level service
            error_reporter: Error reporter. Uses a new ErrorReporter if None.
            ttl: Cache TTL in seconds. Uses settings.account_stats_ttl if None.
            recent_achievements_limit: Uses settings value if None
            top_binged_shows_limit: Uses settings value if None
            fastest_completions_limit: Uses settings value if None
        """
        self._profiles = profile_directory
        self._profile_statistics = profile_statistics
        self._cache = cache
        self._errors = error_reporter or ErrorReporter()
        self._ttl = ttl if ttl is not None else settings.account_stats_ttl
        self._recent_achievements_limit = (
            recent_achievements_limit if recent_achievements_limit is not None else settings.recent_achievements_limit
        )
        self._top_binged_shows_limit = (
            top_binged_shows_limit if top_binged_shows_limit is not None else settings.top_binged_shows_limit
        )
        self._fastest_completions_limit = (
            fastest_completions_limit if fastest_completions_limit is not None else settings.fastest_completions_limit
        )

    @property
    def ttl(self) -> int:
        return self._ttl

    async def _resolve_profiles(self, account_id: int) -> list[Profile]:
        profiles = await self._profiles.get_profiles_by_account_id(account_id)
        if not profiles:
            raise StatisticsValidationError(f"No profiles found for account {account_id}")
        return [p if isinstance(p, Profile) else Profile.model_validate(p) for p in profiles]

    async def _aggregate(
        self,
        operation: str,
        account_id: int,
        metric: StatisticsMetric,
        fetch: Callable[[int], Awaitable[T]],
        merge: Callable[[ProfileResults[T]], R],
        window: int | None = None,
    ) -> R:
        require_id(account_id, "account id")
        label = f"{operation}({account_id})" if window is None else f"{operation}({account_id}, {window})"

        async def compute() -> R:
            profiles = await self._resolve_profiles(account_id)
            values = await asyncio.gather(*(fetch(profile.id) for profile in profiles))
            merged = merge(list(zip(profiles, values, strict=True)))
            logger.debug(
                "account_stats_merged",
                metric=metric.value,
                profile_count=len(profiles),
            )
            return merged

        with statistics_context(account_id=account_id, operation=operation, window=window):
            try:
                key = account_key(account_id, metric, window)
                return await self._cache.get_or_set(key, compute, self._ttl)
            except Exception as e:
                reported = self._errors.handle_error(e, label)
                if reported is e:
                    raise
                raise reported from e

    # =========================================================================
    # Metric Families
    # =========================================================================

    async def get_account_statistics(self, account_id: int) -> AccountStatistics:
        """Get show, movie and episode statistics summed across the account.

        Raises:
            StatisticsValidationError: If the account has no profiles
        """
        return await self._aggregate(
            "getAccountStatistics",
            account_id,
            StatisticsMetric.STATISTICS,
            self._profile_statistics.get_profile_statistics,
            merge_account_statistics,
        )

    async def get_account_abandonment_risk_stats(self, account_id: int) -> AbandonmentRiskStats:
        return await self._aggregate(
            "getAccountAbandonmentRiskStats",
            account_id,
            StatisticsMetric.ABANDONMENT_RISK,
            self._profile_statistics.get_abandonment_risk_stats,
            merge_abandonment_risk,
        )

    async def get_account_activity_timeline(self, account_id: int) -> ActivityTimeline:
        return await self._aggregate(
            "getAccountActivityTimeline",
            account_id,
            StatisticsMetric.ACTIVITY_TIMELINE,
            self._profile_statistics.get_activity_timeline,
            lambda results: merge_activity_timelines([timeline for _, timeline in results]),
        )

    async def get_account_binge_watching_stats(self, account_id: int) -> BingeWatchingStats:
        return await self._aggregate(
            "getAccountBingeWatchingStats",
            account_id,
            StatisticsMetric.BINGE_WATCHING,
            self._profile_statistics.get_binge_watching_stats,
            lambda results: merge_binge_watching(results, self._top_binged_shows_limit),
        )

    async def get_account_milestone_stats(self, account_id: int) -> MilestoneStats:
        return await self._aggregate(
            "getAccountMilestoneStats",
            account_id,
            StatisticsMetric.MILESTONES,
            self._profile_statistics.get_milestone_stats,
            lambda results: merge_milestones(results, self._recent_achievements_limit),
        )

    async def get_account_time_to_watch_stats(self, account_id: int) -> TimeToWatchStats:
        return await self._aggregate(
            "getAccountTimeToWatchStats",
            account_id,
            StatisticsMetric.TIME_TO_WATCH,
            self._profile_statistics.get_time_to_watch_stats,
            lambda results: merge_time_to_watch(results, self._fastest_completions_limit),
        )

    async def get_account_watch_streak_stats(self, account_id: int) -> WatchStreakStats:
        return await self._aggregate(
            "getAccountWatchStreakStats",
            account_id,
            StatisticsMetric.WATCH_STREAK,
            self._profile_statistics.get_watch_streak_stats,
            merge_watch_streaks,
        )

    async def get_account_unaired_content_stats(self, account_id: int) -> UnairedContentStats:
        return await self._aggregate(
            "getAccountUnairedContentStats",
            account_id,
            StatisticsMetric.UNAIRED_CONTENT,
            self._profile_statistics.get_unaired_content_stats,
            merge_unaired_content,
        )

    async def get_account_watching_velocity(
        self, account_id: int, days: int = VELOCITY_WINDOW_DAYS
    ) -> WatchingVelocityStats:
        """Get the account's watching pace over the last ``days`` days.

        Raises:
            StatisticsValidationError: If ``days`` is not a positive integer
        """
        require_id(days, "days")
        return await self._aggregate(
            "getAccountWatchingVelocity",
            account_id,
            StatisticsMetric.WATCHING_VELOCITY,
            lambda profile_id: self._profile_statistics.get_watching_velocity(profile_id, days),
            merge_watching_velocity,
            window=days,
        )

    async def get_account_seasonal_viewing_stats(self, account_id: int) -> SeasonalViewingStats:
        return await self._aggregate(
            "getAccountSeasonalViewingStats",
            account_id,
            StatisticsMetric.SEASONAL_VIEWING,
            self._profile_statistics.get_seasonal_viewing_stats,
            merge_seasonal_viewing,
        )

    async def get_account_content_depth_stats(self, account_id: int) -> ContentDepthStats:
        return await self._aggregate(
            "getAccountContentDepthStats",
            account_id,
            StatisticsMetric.CONTENT_DEPTH,
            self._profile_statistics.get_content_depth_stats,
            merge_content_depth,
        )

    async def get_account_content_discovery_stats(self, account_id: int) -> ContentDiscoveryStats:
        return await self._aggregate(
            "getAccountContentDiscoveryStats",
            account_id,
            StatisticsMetric.CONTENT_DISCOVERY,
            self._profile_statistics.get_content_discovery_stats,
            merge_content_discovery,
        )
