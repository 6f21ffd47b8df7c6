"""Tests for AccountStatisticsService and the account merge rules."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from watchstats.statistics.account_service import (
    AccountStatisticsService,
    merge_abandonment_risk,
    merge_account_statistics,
    merge_activity_timelines,
    merge_binge_watching,
    merge_content_depth,
    merge_content_discovery,
    merge_milestones,
    merge_seasonal_viewing,
    merge_time_to_watch,
    merge_unaired_content,
    merge_watch_streaks,
    merge_watching_velocity,
)
from watchstats.statistics.cache import CacheService, CacheStore
from watchstats.statistics.errors import (
    StatisticsDependencyError,
    StatisticsNotFoundError,
    StatisticsValidationError,
)
from watchstats.statistics.models import (
    AbandonmentRiskShow,
    AbandonmentRiskStats,
    Achievement,
    ActivityTimeline,
    BacklogAging,
    BingedShow,
    BingeSession,
    BingeWatchingStats,
    ContentAdditionRate,
    ContentDepthStats,
    ContentDiscoveryStats,
    DailyActivity,
    EpisodeWatchProgress,
    MilestoneStats,
    MilestoneType,
    MonthlyActivity,
    MovieReference,
    MovieStatistics,
    MovieWatchStatusCounts,
    Profile,
    ProfileStatistics,
    SeasonalViewingStats,
    ShowCompletion,
    ShowProgress,
    ShowStatistics,
    ShowWatchStatusCounts,
    StreakPeriod,
    TimeToWatchStats,
    UnairedContentStats,
    VelocityTrend,
    ViewingBySeason,
    WatchingVelocityStats,
    WatchStreakStats,
    WatchToAddRatio,
    WeeklyActivity,
)
from watchstats.statistics.profile_service import ProfileStatisticsService
from watchstats.statistics.sources import ProfileDirectory

ALICE = Profile(id=1, name="Alice", account_id=5)
BOB = Profile(id=2, name="Bob", account_id=5)


def _risk_show(show_id: int, days: int) -> AbandonmentRiskShow:
    return AbandonmentRiskShow(
        show_id=show_id,
        show_title=f"Show {show_id}",
        days_since_last_watch=days,
        unwatched_episodes=10,
        status="WATCHING",
    )


def _binge(count: int, average: float, longest: int = 0, shows=()) -> BingeWatchingStats:
    return BingeWatchingStats(
        binge_session_count=count,
        average_episodes_per_binge=average,
        longest_binge_session=BingeSession(show_title="Longest", episode_count=longest, date="2024-02-01"),
        top_binged_shows=[BingedShow(show_id=i, show_title=f"Show {i}", binge_session_count=c) for i, c in shows],
    )


def _discovery(
    days: int, shows_rate: float, movies_rate: float, shows_ratio: float, movies_ratio: float
) -> ContentDiscoveryStats:
    return ContentDiscoveryStats(
        days_since_last_content_added=days,
        content_addition_rate=ContentAdditionRate(shows_per_month=shows_rate, movies_per_month=movies_rate),
        watch_to_add_ratio=WatchToAddRatio(shows=shows_ratio, movies=movies_ratio),
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def profile_directory() -> AsyncMock:
    """Create a mocked profile directory with two profiles."""
    directory = AsyncMock(spec=ProfileDirectory)
    directory.get_profiles_by_account_id.return_value = [ALICE, BOB]
    return directory


@pytest.fixture
def profile_statistics() -> AsyncMock:
    """Create a mocked profile statistics service keyed by profile id."""
    service = AsyncMock(spec=ProfileStatisticsService)

    abandonment = {
        1: AbandonmentRiskStats(shows_at_risk=[_risk_show(10, 12), _risk_show(11, 40)], show_abandonment_rate=15.5),
        2: AbandonmentRiskStats(shows_at_risk=[_risk_show(20, 25)], show_abandonment_rate=12.0),
    }
    binges = {
        1: _binge(15, 5.2, longest=8, shows=[(100, 6), (101, 2)]),
        2: _binge(10, 4.8, longest=11, shows=[(101, 5)]),
    }
    milestones = {
        1: MilestoneStats(total_episodes_watched=1500, total_movies_watched=250, total_hours_watched=2500),
        2: MilestoneStats(total_episodes_watched=1200, total_movies_watched=200, total_hours_watched=2000),
    }
    velocity = {
        1: WatchingVelocityStats(
            episodes_per_week=5,
            episodes_per_month=20,
            average_episodes_per_day=0.67,
            most_active_day="Saturday",
            most_active_hour=21,
            velocity_trend=VelocityTrend.INCREASING,
        ),
        2: WatchingVelocityStats(
            episodes_per_week=1,
            episodes_per_month=4,
            average_episodes_per_day=0.13,
            most_active_day="Sunday",
            most_active_hour=9,
            velocity_trend=VelocityTrend.DECREASING,
        ),
    }
    seasonal = {
        1: SeasonalViewingStats(
            viewing_by_month={"January": 10, "July": 2},
            viewing_by_season=ViewingBySeason(winter=10, summer=2),
        ),
        2: SeasonalViewingStats(
            viewing_by_month={"July": 5, "March": 1},
            viewing_by_season=ViewingBySeason(summer=5, spring=1),
        ),
    }
    depth = {
        1: ContentDepthStats(
            average_episode_count_per_show=20,
            average_movie_runtime=110,
            release_year_distribution={"2010s": 2},
            content_maturity_distribution={"TV-MA": 3},
        ),
        2: ContentDepthStats(
            average_episode_count_per_show=11,
            average_movie_runtime=95.5,
            release_year_distribution={"2010s": 1, "2020s": 4},
            content_maturity_distribution={"PG": 2},
        ),
    }
    discovery = {
        1: _discovery(12, shows_rate=1, movies_rate=2, shows_ratio=0.5, movies_ratio=0.25),
        2: _discovery(3, shows_rate=2, movies_rate=1, shows_ratio=1.0, movies_ratio=0.75),
    }

    service.get_abandonment_risk_stats.side_effect = lambda profile_id: abandonment[profile_id]
    service.get_binge_watching_stats.side_effect = lambda profile_id: binges[profile_id]
    service.get_milestone_stats.side_effect = lambda profile_id: milestones[profile_id]
    service.get_activity_timeline.side_effect = lambda profile_id: ActivityTimeline(
        daily_activity=[DailyActivity(date="2024-01-01", episodes_watched=5 if profile_id == 1 else 3)]
    )
    service.get_unaired_content_stats.side_effect = lambda profile_id: UnairedContentStats(
        unaired_show_count=profile_id, unaired_episode_count=10 * profile_id
    )
    service.get_watching_velocity.side_effect = lambda profile_id, days: velocity[profile_id]
    service.get_seasonal_viewing_stats.side_effect = lambda profile_id: seasonal[profile_id]
    service.get_content_depth_stats.side_effect = lambda profile_id: depth[profile_id]
    service.get_content_discovery_stats.side_effect = lambda profile_id: discovery[profile_id]
    return service


@pytest.fixture
def cache() -> CacheService:
    return CacheService()


@pytest.fixture
def service(profile_directory, profile_statistics, cache) -> AccountStatisticsService:
    """Create an account statistics service for testing."""
    return AccountStatisticsService(profile_directory, profile_statistics, cache, ttl=3600)


# =============================================================================
# Service Tests
# =============================================================================


class TestAccountAggregation:
    """Tests for the account-level fan-out and merge."""

    @pytest.mark.asyncio
    async def test_abandonment_rate_is_unweighted_mean(self, service):
        stats = await service.get_account_abandonment_risk_stats(5)

        assert stats.show_abandonment_rate == 13.75
        assert len(stats.shows_at_risk) == 3

    @pytest.mark.asyncio
    async def test_shows_at_risk_tagged_and_sorted(self, service):
        stats = await service.get_account_abandonment_risk_stats(5)

        assert [(s.show_id, s.profile_name) for s in stats.shows_at_risk] == [
            (11, "Alice"),
            (20, "Bob"),
            (10, "Alice"),
        ]

    @pytest.mark.asyncio
    async def test_binge_average_is_weighted(self, service):
        stats = await service.get_account_binge_watching_stats(5)

        assert stats.binge_session_count == 25
        assert stats.average_episodes_per_binge == pytest.approx(5.04)
        assert stats.longest_binge_session.episode_count == 11
        assert stats.longest_binge_session.profile_name == "Bob"
        assert [(s.show_id, s.binge_session_count) for s in stats.top_binged_shows] == [(101, 7), (100, 6)]

    @pytest.mark.asyncio
    async def test_milestone_totals_summed(self, service):
        stats = await service.get_account_milestone_stats(5)

        assert stats.total_episodes_watched == 2700
        assert stats.total_movies_watched == 450
        assert stats.total_hours_watched == 4500

        achieved = {(m.type, m.threshold) for m in stats.milestones if m.achieved}
        assert (MilestoneType.EPISODES, 1000) in achieved
        assert (MilestoneType.EPISODES, 5000) not in achieved
        assert (MilestoneType.MOVIES, 250) in achieved

    @pytest.mark.asyncio
    async def test_activity_on_same_day_is_summed(self, service):
        timeline = await service.get_account_activity_timeline(5)

        assert timeline.daily_activity == [DailyActivity(date="2024-01-01", episodes_watched=8)]

    @pytest.mark.asyncio
    async def test_unaired_counts_summed(self, service):
        stats = await service.get_account_unaired_content_stats(5)

        assert stats.unaired_show_count == 3
        assert stats.unaired_episode_count == 30

    @pytest.mark.asyncio
    async def test_fan_out_covers_every_profile(self, service, profile_statistics):
        await service.get_account_binge_watching_stats(5)

        called_with = sorted(call.args[0] for call in profile_statistics.get_binge_watching_stats.await_args_list)
        assert called_with == [1, 2]

    @pytest.mark.asyncio
    async def test_profiles_as_dicts_are_accepted(self, service, profile_directory):
        profile_directory.get_profiles_by_account_id.return_value = [
            {"id": 1, "name": "Alice", "accountId": 5},
            {"id": 2, "name": "Bob", "accountId": 5},
        ]

        stats = await service.get_account_abandonment_risk_stats(5)

        assert {s.profile_name for s in stats.shows_at_risk} == {"Alice", "Bob"}

    @pytest.mark.asyncio
    async def test_velocity_weighted_by_monthly_pace(self, service, profile_statistics):
        stats = await service.get_account_watching_velocity(5)

        assert stats.episodes_per_week == pytest.approx(4.33)
        assert stats.episodes_per_month == pytest.approx(17.33)
        assert stats.average_episodes_per_day == pytest.approx(0.58)
        assert stats.most_active_day == "Saturday"
        assert stats.most_active_hour == 21
        assert stats.velocity_trend == VelocityTrend.INCREASING
        called_with = sorted(call.args for call in profile_statistics.get_watching_velocity.await_args_list)
        assert called_with == [(1, 30), (2, 30)]

    @pytest.mark.asyncio
    async def test_seasonal_viewing_summed(self, service):
        stats = await service.get_account_seasonal_viewing_stats(5)

        assert stats.viewing_by_month == {"January": 10, "July": 7, "March": 1}
        assert stats.viewing_by_season == ViewingBySeason(spring=1, summer=7, winter=10)
        assert stats.peak_viewing_month == "January"
        assert stats.slowest_viewing_month == "March"

    @pytest.mark.asyncio
    async def test_content_depth_means_and_distributions(self, service):
        stats = await service.get_account_content_depth_stats(5)

        assert stats.average_episode_count_per_show == 15.5
        assert stats.average_movie_runtime == 102.75
        assert stats.release_year_distribution == {"2010s": 3, "2020s": 4}
        assert stats.content_maturity_distribution == {"TV-MA": 3, "PG": 2}

    @pytest.mark.asyncio
    async def test_content_discovery_takes_latest_addition(self, service):
        stats = await service.get_account_content_discovery_stats(5)

        assert stats.days_since_last_content_added == 3
        assert stats.content_addition_rate == ContentAdditionRate(shows_per_month=1.5, movies_per_month=1.5)
        assert stats.watch_to_add_ratio == WatchToAddRatio(shows=0.75, movies=0.5)

    @pytest.mark.asyncio
    async def test_zero_display_limit_is_respected(self, profile_directory, profile_statistics, cache):
        service = AccountStatisticsService(profile_directory, profile_statistics, cache, top_binged_shows_limit=0)

        stats = await service.get_account_binge_watching_stats(5)

        assert stats.binge_session_count == 25
        assert stats.top_binged_shows == []


class TestAccountCaching:
    """Tests for account-level cache entries."""

    @pytest.mark.asyncio
    async def test_account_ttl_and_key(self, profile_directory, profile_statistics):
        store = MagicMock(spec=CacheStore)
        store.get.return_value = (False, None)
        service = AccountStatisticsService(
            profile_directory, profile_statistics, CacheService(store=store), ttl=3600
        )

        await service.get_account_binge_watching_stats(5)

        store.set.assert_called_once()
        key, value, ttl = store.set.call_args.args
        assert key == "account_5_binge_watching_stats"
        assert isinstance(value, BingeWatchingStats)
        assert ttl == 3600

    @pytest.mark.asyncio
    async def test_default_ttl_from_settings(self, profile_directory, profile_statistics, cache):
        service = AccountStatisticsService(profile_directory, profile_statistics, cache)
        assert service.ttl == 3600

    @pytest.mark.asyncio
    async def test_hit_skips_fan_out(self, service, profile_directory, profile_statistics):
        first = await service.get_account_milestone_stats(5)
        second = await service.get_account_milestone_stats(5)

        assert first is second
        assert profile_directory.get_profiles_by_account_id.await_count == 1
        assert profile_statistics.get_milestone_stats.await_count == 2

    @pytest.mark.asyncio
    async def test_account_invalidation(self, service, profile_statistics, cache):
        await service.get_account_unaired_content_stats(5)
        assert cache.keys() == ["account_5_unaired_content_stats"]

        cache.invalidate_account_statistics(5)
        await service.get_account_unaired_content_stats(5)

        assert profile_statistics.get_unaired_content_stats.await_count == 4

    @pytest.mark.asyncio
    async def test_velocity_window_in_key(self, service, profile_statistics, cache):
        await service.get_account_watching_velocity(5, days=7)
        await service.get_account_watching_velocity(5, days=7)

        assert cache.keys() == ["account_5_watching_velocity_7"]
        assert profile_statistics.get_watching_velocity.await_count == 2


class TestAccountErrors:
    """Tests for validation and failure propagation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("profiles", [[], None])
    async def test_account_without_profiles(self, service, profile_directory, profile_statistics, cache, profiles):
        profile_directory.get_profiles_by_account_id.return_value = profiles

        with pytest.raises(StatisticsValidationError, match="No profiles found for account 5") as exc_info:
            await service.get_account_statistics(5)

        assert exc_info.value.context == "getAccountStatistics(5)"
        profile_statistics.get_profile_statistics.assert_not_awaited()
        assert cache.keys() == []

    @pytest.mark.asyncio
    async def test_invalid_account_id(self, service, profile_directory):
        with pytest.raises(StatisticsValidationError):
            await service.get_account_watch_streak_stats(-3)

        profile_directory.get_profiles_by_account_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_profile_statistics_error_propagates(self, service, profile_statistics, cache):
        failure = StatisticsNotFoundError("Profile statistics with ID 2 not found", context="getMilestoneStats(2)")
        profile_statistics.get_milestone_stats.side_effect = [MilestoneStats(), failure]

        with pytest.raises(StatisticsNotFoundError) as exc_info:
            await service.get_account_milestone_stats(5)

        assert exc_info.value is failure
        assert exc_info.value.context == "getMilestoneStats(2)"
        assert cache.keys() == []

    @pytest.mark.asyncio
    async def test_directory_failure_is_wrapped(self, service, profile_directory):
        profile_directory.get_profiles_by_account_id.side_effect = ConnectionError("directory down")

        with pytest.raises(StatisticsDependencyError) as exc_info:
            await service.get_account_time_to_watch_stats(5)

        assert exc_info.value.context == "getAccountTimeToWatchStats(5)"
        assert "directory down" in str(exc_info.value)


    @pytest.mark.asyncio
    async def test_velocity_failure_label_includes_window(self, service, profile_statistics):
        profile_statistics.get_watching_velocity.side_effect = ConnectionError("db offline")

        with pytest.raises(StatisticsDependencyError) as exc_info:
            await service.get_account_watching_velocity(5, days=14)

        assert exc_info.value.context == "getAccountWatchingVelocity(5, 14)"

    @pytest.mark.asyncio
    async def test_invalid_velocity_window(self, service, profile_directory):
        with pytest.raises(StatisticsValidationError, match="Invalid days"):
            await service.get_account_watching_velocity(5, days=0)

        profile_directory.get_profiles_by_account_id.assert_not_awaited()


# =============================================================================
# Merge Rule Tests
# =============================================================================


class TestMergeAccountStatistics:
    """Tests for merge_account_statistics."""

    def _stats(self, profile_id: int, show_ids, movie_ids, watched: int) -> ProfileStatistics:
        return ProfileStatistics(
            profile_id=profile_id,
            show_statistics=ShowStatistics(
                total=len(show_ids),
                watch_status_counts=ShowWatchStatusCounts(watched=watched, unaired=1),
                genre_distribution={"Drama": len(show_ids)},
            ),
            movie_statistics=MovieStatistics(
                total=len(movie_ids),
                watch_status_counts=MovieWatchStatusCounts(watched=len(movie_ids)),
                movie_references=[MovieReference(id=i, title=f"Movie {i}") for i in movie_ids],
            ),
            episode_watch_progress=EpisodeWatchProgress(
                total_episodes=20,
                watched_episodes=9,
                unaired_episodes=2,
                shows_progress=[ShowProgress(show_id=i, title=f"Show {i}") for i in show_ids],
            ),
        )

    def test_sums_and_unique_counts(self):
        merged = merge_account_statistics(
            [
                (ALICE, self._stats(1, [1, 2, 3], [7], watched=1)),
                (BOB, self._stats(2, [2, 3], [7, 8], watched=1)),
            ]
        )

        assert merged.profile_count == 2
        assert merged.unique_content.show_count == 3
        assert merged.unique_content.movie_count == 2
        assert merged.show_statistics.total == 5
        assert merged.show_statistics.genre_distribution == {"Drama": 5}
        assert merged.episode_statistics.total_episodes == 40
        assert merged.episode_statistics.watched_episodes == 18
        # 18 of 36 aired episodes
        assert merged.episode_statistics.watch_progress == 50
        # 2 of 3 aired shows
        assert merged.show_statistics.watch_progress == 67
        assert merged.movie_statistics.watch_progress == 100


class TestMergeAbandonmentRisk:
    def test_single_profile_keeps_rate(self):
        stats = AbandonmentRiskStats(shows_at_risk=[_risk_show(1, 30)], show_abandonment_rate=7.25)
        merged = merge_abandonment_risk([(ALICE, stats)])

        assert merged.show_abandonment_rate == 7.25
        assert merged.shows_at_risk[0].profile_name == "Alice"
        assert stats.shows_at_risk[0].profile_name is None


class TestMergeActivityTimelines:
    def test_periods_keep_first_seen_order(self):
        merged = merge_activity_timelines(
            [
                ActivityTimeline(
                    daily_activity=[
                        DailyActivity(date="2024-01-02", episodes_watched=1, shows_watched=1),
                        DailyActivity(date="2024-01-01", episodes_watched=2, shows_watched=1),
                    ],
                    weekly_activity=[WeeklyActivity(week_start="2024-01-01", episodes_watched=4)],
                ),
                ActivityTimeline(
                    daily_activity=[
                        DailyActivity(date="2024-01-01", episodes_watched=3, shows_watched=2),
                        DailyActivity(date="2024-01-03", episodes_watched=1, shows_watched=1),
                    ],
                    monthly_activity=[MonthlyActivity(month="2024-01", episodes_watched=6, movies_watched=1)],
                ),
            ]
        )

        assert [(d.date, d.episodes_watched, d.shows_watched) for d in merged.daily_activity] == [
            ("2024-01-02", 1, 1),
            ("2024-01-01", 5, 3),
            ("2024-01-03", 1, 1),
        ]
        assert merged.weekly_activity[0].episodes_watched == 4
        assert merged.monthly_activity[0].movies_watched == 1

    def test_empty(self):
        assert merge_activity_timelines([]) == ActivityTimeline()


class TestMergeBingeWatching:
    def test_no_sessions(self):
        merged = merge_binge_watching([(ALICE, BingeWatchingStats()), (BOB, BingeWatchingStats())])

        assert merged.binge_session_count == 0
        assert merged.average_episodes_per_binge == 0.0
        assert merged.top_binged_shows == []

    def test_longest_session_tie_keeps_first(self):
        merged = merge_binge_watching([(ALICE, _binge(2, 4.0, longest=6)), (BOB, _binge(3, 4.0, longest=6))])
        assert merged.longest_binge_session.profile_name == "Alice"

    def test_top_shows_capped(self):
        shows = [(i, 20 - i) for i in range(15)]
        merged = merge_binge_watching([(ALICE, _binge(5, 3.0, shows=shows))], top_shows_limit=10)

        assert len(merged.top_binged_shows) == 10
        assert merged.top_binged_shows[0].show_id == 0

    def test_top_show_ties_keep_first_seen(self):
        merged = merge_binge_watching(
            [(ALICE, _binge(2, 3.0, shows=[(1, 2), (2, 2)])), (BOB, _binge(1, 3.0, shows=[(3, 2)]))]
        )
        assert [s.show_id for s in merged.top_binged_shows] == [1, 2, 3]


class TestMergeMilestones:
    def test_achievements_tagged_newest_first_and_capped(self):
        alice = MilestoneStats(
            total_episodes_watched=505,
            recent_achievements=[Achievement(description="500 Episodes Watched", achieved_date="2024-03-01")],
        )
        bob = MilestoneStats(
            total_movies_watched=26,
            recent_achievements=[
                Achievement(description="25 Movies Watched", achieved_date="2024-05-01"),
                Achievement(description="100 Hours Watched", achieved_date="2024-01-01"),
            ],
        )

        merged = merge_milestones([(ALICE, alice), (BOB, bob)], recent_achievements_limit=2)

        assert [(a.description, a.profile_name) for a in merged.recent_achievements] == [
            ("25 Movies Watched", "Bob"),
            ("500 Episodes Watched", "Alice"),
        ]

    def test_empty_totals(self):
        merged = merge_milestones([(ALICE, MilestoneStats())])

        assert merged.total_episodes_watched == 0
        assert not any(m.achieved for m in merged.milestones)
        assert merged.recent_achievements == []


class TestMergeTimeToWatch:
    def test_merge(self):
        alice = TimeToWatchStats(
            average_days_to_start_show=2.0,
            average_days_to_complete_show=30.0,
            fastest_completions=[ShowCompletion(show_id=1, show_title="A", days_to_complete=4.5)],
            backlog_aging=BacklogAging(unwatched_over_30_days=3, unwatched_over_365_days=1),
        )
        bob = TimeToWatchStats(
            average_days_to_start_show=5.0,
            average_days_to_complete_show=21.5,
            fastest_completions=[ShowCompletion(show_id=2, show_title="B", days_to_complete=1.5)],
            backlog_aging=BacklogAging(unwatched_over_30_days=2, unwatched_over_90_days=4),
        )

        merged = merge_time_to_watch([(ALICE, alice), (BOB, bob)])

        assert merged.average_days_to_start_show == 3.5
        assert merged.average_days_to_complete_show == 25.75
        assert [(c.show_id, c.profile_name) for c in merged.fastest_completions] == [(2, "Bob"), (1, "Alice")]
        assert merged.backlog_aging == BacklogAging(
            unwatched_over_30_days=5, unwatched_over_90_days=4, unwatched_over_365_days=1
        )

    def test_fastest_completions_capped(self):
        stats = TimeToWatchStats(
            fastest_completions=[ShowCompletion(show_id=i, show_title=str(i), days_to_complete=i) for i in range(12)]
        )
        merged = merge_time_to_watch([(ALICE, stats)], fastest_completions_limit=10)
        assert len(merged.fastest_completions) == 10


class TestMergeWatchStreaks:
    def test_merge(self):
        alice = WatchStreakStats(
            current_streak=4,
            current_streak_start_date="2024-04-01",
            longest_streak=20,
            longest_streak_period=StreakPeriod(start_date="2023-01-01", end_date="2023-01-20", days=20),
            streaks_over_7_days=2,
            average_streak_length=10.0,
        )
        bob = WatchStreakStats(
            current_streak=6,
            current_streak_start_date="2024-03-30",
            longest_streak=12,
            streaks_over_7_days=1,
            average_streak_length=13.0,
        )

        merged = merge_watch_streaks([(ALICE, alice), (BOB, bob)])

        assert merged.current_streak == 6
        assert merged.current_streak_start_date == "2024-03-30"
        assert merged.longest_streak == 20
        assert merged.longest_streak_period.days == 20
        assert merged.streaks_over_7_days == 3
        assert merged.average_streak_length == 11.0

    def test_no_activity(self):
        assert merge_watch_streaks([(ALICE, WatchStreakStats())]) == WatchStreakStats()


class TestMergeUnairedContent:
    def test_sum(self):
        merged = merge_unaired_content(
            [
                (ALICE, UnairedContentStats(unaired_show_count=1, unaired_season_count=2, unaired_movie_count=1)),
                (BOB, UnairedContentStats(unaired_season_count=1, unaired_episode_count=6)),
            ]
        )
        assert merged == UnairedContentStats(
            unaired_show_count=1, unaired_season_count=3, unaired_episode_count=6, unaired_movie_count=1
        )


class TestMergeWatchingVelocity:
    def test_idle_profiles_weigh_one(self):
        merged = merge_watching_velocity(
            [
                (ALICE, WatchingVelocityStats(most_active_day="Monday", most_active_hour=8)),
                (BOB, WatchingVelocityStats(episodes_per_week=2.0, most_active_day="Friday", most_active_hour=20)),
            ]
        )

        assert merged.episodes_per_week == 1.0
        assert merged.most_active_day == "Monday"
        assert merged.most_active_hour == 8
        assert merged.velocity_trend == VelocityTrend.STABLE

    def test_most_common_trend_wins(self):
        carol = Profile(id=3, name="Carol")
        merged = merge_watching_velocity(
            [
                (ALICE, WatchingVelocityStats(velocity_trend=VelocityTrend.INCREASING)),
                (BOB, WatchingVelocityStats(velocity_trend=VelocityTrend.DECREASING)),
                (carol, WatchingVelocityStats(velocity_trend=VelocityTrend.DECREASING)),
            ]
        )
        assert merged.velocity_trend == VelocityTrend.DECREASING

    def test_trend_tie_prefers_increasing_over_stable(self):
        merged = merge_watching_velocity(
            [
                (ALICE, WatchingVelocityStats(velocity_trend=VelocityTrend.STABLE)),
                (BOB, WatchingVelocityStats(velocity_trend=VelocityTrend.INCREASING)),
            ]
        )
        assert merged.velocity_trend == VelocityTrend.INCREASING

    def test_empty(self):
        assert merge_watching_velocity([]) == WatchingVelocityStats()


class TestMergeSeasonalViewing:
    def test_no_viewing(self):
        merged = merge_seasonal_viewing([(ALICE, SeasonalViewingStats()), (BOB, SeasonalViewingStats())])

        assert merged.viewing_by_month == {}
        assert merged.peak_viewing_month == "N/A"
        assert merged.slowest_viewing_month == "N/A"

    def test_month_ties_keep_first_seen(self):
        merged = merge_seasonal_viewing(
            [
                (ALICE, SeasonalViewingStats(viewing_by_month={"May": 4, "June": 1})),
                (BOB, SeasonalViewingStats(viewing_by_month={"April": 4, "October": 1})),
            ]
        )

        assert merged.peak_viewing_month == "May"
        assert merged.slowest_viewing_month == "June"


class TestMergeContentDepth:
    def test_means_round_half_up(self):
        merged = merge_content_depth(
            [
                (ALICE, ContentDepthStats(average_episode_count_per_show=10.125)),
                (BOB, ContentDepthStats(average_episode_count_per_show=10.125)),
            ]
        )
        assert merged.average_episode_count_per_show == 10.13

    def test_empty(self):
        assert merge_content_depth([]) == ContentDepthStats()


class TestMergeContentDiscovery:
    def test_single_profile_unchanged(self):
        stats = _discovery(9, shows_rate=0.5, movies_rate=1.25, shows_ratio=2.0, movies_ratio=0.0)
        assert merge_content_discovery([(ALICE, stats)]) == stats

    def test_empty(self):
        assert merge_content_discovery([]) == ContentDiscoveryStats()
