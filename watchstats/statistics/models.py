"""Statistics data contracts.

Every metric payload is a pydantic model. Python code uses snake_case field
names; ``model_dump(by_alias=True)`` produces the camelCase JSON shape served
to clients (``showAbandonmentRate``, ``bingeSessionCount``...). Models accept
either naming on input so data sources may return raw JSON rows.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# =============================================================================
# Enums
# =============================================================================


class WatchStatus(str, Enum):
    """Watch state of a show, season, episode or movie for one profile."""

    NOT_WATCHED = "NOT_WATCHED"
    WATCHING = "WATCHING"
    WATCHED = "WATCHED"
    UP_TO_DATE = "UP_TO_DATE"
    UNAIRED = "UNAIRED"


class MilestoneType(str, Enum):
    """Unit a milestone threshold is measured in."""

    EPISODES = "episodes"
    MOVIES = "movies"
    HOURS = "hours"


class StatisticsMetric(str, Enum):
    """Metric families; values are the cache key suffixes."""

    STATISTICS = "statistics"
    ABANDONMENT_RISK = "abandonment_risk_stats"
    ACTIVITY_TIMELINE = "activity_timeline"
    BINGE_WATCHING = "binge_watching_stats"
    MILESTONES = "milestone_stats"
    WATCH_STREAK = "watch_streak_stats"
    TIME_TO_WATCH = "time_to_watch_stats"
    UNAIRED_CONTENT = "unaired_content_stats"
    WATCHING_VELOCITY = "watching_velocity"
    SEASONAL_VIEWING = "seasonal_viewing_stats"
    CONTENT_DEPTH = "content_depth_stats"
    CONTENT_DISCOVERY = "content_discovery_stats"


class VelocityTrend(str, Enum):
    """Direction of recent watching pace against the earlier half of the window."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class StatsModel(BaseModel):
    """Base for all statistics payloads (camelCase aliases on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Accounts and Profiles
# =============================================================================


class Profile(StatsModel):
    """A named watch-tracking identity under an account."""

    id: int
    name: str
    account_id: int | None = None


# =============================================================================
# Show / Movie / Episode Statistics
# =============================================================================


class ShowWatchStatusCounts(StatsModel):
    unaired: int = 0
    watched: int = 0
    watching: int = 0
    not_watched: int = 0
    up_to_date: int = 0


class ShowStatistics(StatsModel):
    """Counts and distributions over the shows a profile follows."""

    total: int = 0
    watch_status_counts: ShowWatchStatusCounts = Field(default_factory=ShowWatchStatusCounts)
    genre_distribution: dict[str, int] = Field(default_factory=dict)
    service_distribution: dict[str, int] = Field(default_factory=dict)
    watch_progress: int = 0


class MovieReference(StatsModel):
    id: int
    title: str
    tmdb_id: int | None = None
    release_date: str | None = None


class MovieWatchStatusCounts(StatsModel):
    unaired: int = 0
    watched: int = 0
    not_watched: int = 0


class MovieStatistics(StatsModel):
    """Counts and distributions over the movies a profile follows."""

    total: int = 0
    watch_status_counts: MovieWatchStatusCounts = Field(default_factory=MovieWatchStatusCounts)
    genre_distribution: dict[str, int] = Field(default_factory=dict)
    service_distribution: dict[str, int] = Field(default_factory=dict)
    movie_references: list[MovieReference] = Field(default_factory=list)
    watch_progress: int = 0


class ShowProgress(StatsModel):
    show_id: int
    title: str
    status: WatchStatus = WatchStatus.NOT_WATCHED
    total_episodes: int = 0
    watched_episodes: int = 0
    percent_complete: int = 0


class EpisodeWatchProgress(StatsModel):
    total_episodes: int = 0
    watched_episodes: int = 0
    unaired_episodes: int = 0
    overall_progress: int = 0
    shows_progress: list[ShowProgress] = Field(default_factory=list)


class ProfileStatistics(StatsModel):
    """Show, movie and episode statistics for one profile."""

    profile_id: int
    show_statistics: ShowStatistics
    movie_statistics: MovieStatistics
    episode_watch_progress: EpisodeWatchProgress


class UniqueContentCounts(StatsModel):
    show_count: int = 0
    movie_count: int = 0


class AccountEpisodeProgress(StatsModel):
    total_episodes: int = 0
    watched_episodes: int = 0
    unaired_episodes: int = 0
    watch_progress: int = 0


class AccountStatistics(StatsModel):
    """Show, movie and episode statistics summed over an account's profiles."""

    profile_count: int
    unique_content: UniqueContentCounts
    show_statistics: ShowStatistics
    movie_statistics: MovieStatistics
    episode_statistics: AccountEpisodeProgress


# =============================================================================
# Abandonment Risk
# =============================================================================


class AbandonmentRiskShow(StatsModel):
    show_id: int
    show_title: str
    days_since_last_watch: int
    unwatched_episodes: int
    status: str
    profile_name: str | None = None


class AbandonmentRiskStats(StatsModel):
    """Shows at risk of being dropped and the share of started shows dropped."""

    shows_at_risk: list[AbandonmentRiskShow] = Field(default_factory=list)
    show_abandonment_rate: float = 0.0


# =============================================================================
# Activity Timeline
# =============================================================================


class DailyActivity(StatsModel):
    date: str
    episodes_watched: int = 0
    shows_watched: int = 0


class WeeklyActivity(StatsModel):
    week_start: str
    episodes_watched: int = 0


class MonthlyActivity(StatsModel):
    month: str
    episodes_watched: int = 0
    movies_watched: int = 0


class ActivityTimeline(StatsModel):
    daily_activity: list[DailyActivity] = Field(default_factory=list)
    weekly_activity: list[WeeklyActivity] = Field(default_factory=list)
    monthly_activity: list[MonthlyActivity] = Field(default_factory=list)


# =============================================================================
# Binge Watching
# =============================================================================


class BingeSession(StatsModel):
    show_title: str = ""
    episode_count: int = 0
    date: str = ""
    profile_name: str | None = None


class BingedShow(StatsModel):
    show_id: int
    show_title: str
    binge_session_count: int


class BingeWatchingStats(StatsModel):
    """Sessions of three or more episodes watched in quick succession."""

    binge_session_count: int = 0
    average_episodes_per_binge: float = 0.0
    longest_binge_session: BingeSession = Field(default_factory=BingeSession)
    top_binged_shows: list[BingedShow] = Field(default_factory=list)


# =============================================================================
# Milestones
# =============================================================================


class Milestone(StatsModel):
    type: MilestoneType
    threshold: int | float
    achieved: bool
    progress: float


class Achievement(StatsModel):
    description: str
    achieved_date: str
    profile_name: str | None = None


class MilestoneCounts(StatsModel):
    """Raw totals the data source reports for milestone derivation."""

    total_episodes_watched: int = 0
    total_movies_watched: int = 0
    total_runtime_minutes: int = 0
    profile_created_at: datetime | None = None
    first_episode_watched_at: datetime | None = None
    first_movie_watched_at: datetime | None = None


class MilestoneStats(StatsModel):
    total_episodes_watched: int = 0
    total_movies_watched: int = 0
    total_hours_watched: int = 0
    profile_created_at: str | None = None
    first_episode_watched_at: str | None = None
    first_movie_watched_at: str | None = None
    milestones: list[Milestone] = Field(default_factory=list)
    recent_achievements: list[Achievement] = Field(default_factory=list)


# =============================================================================
# Watch Streaks
# =============================================================================


class StreakPeriod(StatsModel):
    start_date: str = ""
    end_date: str = ""
    days: int = 0


class WatchStreakStats(StatsModel):
    """Consecutive days with watching activity."""

    current_streak: int = 0
    longest_streak: int = 0
    current_streak_start_date: str = ""
    longest_streak_period: StreakPeriod = Field(default_factory=StreakPeriod)
    streaks_over_7_days: int = 0
    average_streak_length: float = 0.0


# =============================================================================
# Time To Watch
# =============================================================================


class ShowCompletion(StatsModel):
    show_id: int
    show_title: str
    days_to_complete: float
    profile_name: str | None = None


class BacklogAging(StatsModel):
    unwatched_over_30_days: int = 0
    unwatched_over_90_days: int = 0
    unwatched_over_365_days: int = 0


class TimeToWatchStats(StatsModel):
    """How long content waits before being started and finished."""

    average_days_to_start_show: float = 0.0
    average_days_to_complete_show: float = 0.0
    fastest_completions: list[ShowCompletion] = Field(default_factory=list)
    backlog_aging: BacklogAging = Field(default_factory=BacklogAging)


# =============================================================================
# Unaired Content
# =============================================================================


class UnairedContentStats(StatsModel):
    unaired_show_count: int = 0
    unaired_season_count: int = 0
    unaired_episode_count: int = 0
    unaired_movie_count: int = 0


# =============================================================================
# Watching Velocity
# =============================================================================


class WatchingVelocityStats(StatsModel):
    """Episode pace over a trailing window of days."""

    episodes_per_week: float = 0.0
    episodes_per_month: float = 0.0
    average_episodes_per_day: float = 0.0
    most_active_day: str = "N/A"
    most_active_hour: int = 0
    velocity_trend: VelocityTrend = VelocityTrend.STABLE


# =============================================================================
# Seasonal Viewing
# =============================================================================


class ViewingBySeason(StatsModel):
    spring: int = 0
    summer: int = 0
    fall: int = 0
    winter: int = 0


class SeasonalViewingStats(StatsModel):
    """Episodes watched per calendar month name and per season."""

    viewing_by_month: dict[str, int] = Field(default_factory=dict)
    viewing_by_season: ViewingBySeason = Field(default_factory=ViewingBySeason)
    peak_viewing_month: str = "N/A"
    slowest_viewing_month: str = "N/A"


# =============================================================================
# Content Depth
# =============================================================================


class ContentDepthStats(StatsModel):
    """Preferred content length, release era and maturity rating."""

    average_episode_count_per_show: float = 0.0
    average_movie_runtime: float = 0.0
    release_year_distribution: dict[str, int] = Field(default_factory=dict)
    content_maturity_distribution: dict[str, int] = Field(default_factory=dict)


# =============================================================================
# Content Discovery
# =============================================================================


class ContentAdditionRate(StatsModel):
    shows_per_month: float = 0.0
    movies_per_month: float = 0.0


class WatchToAddRatio(StatsModel):
    shows: float = 0.0
    movies: float = 0.0


class ContentDiscoveryStats(StatsModel):
    """How often content is added and how much of it gets watched."""

    days_since_last_content_added: int = 0
    content_addition_rate: ContentAdditionRate = Field(default_factory=ContentAdditionRate)
    watch_to_add_ratio: WatchToAddRatio = Field(default_factory=WatchToAddRatio)
