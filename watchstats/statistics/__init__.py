"""Statistics module.

Computes, caches and aggregates watch-behaviour statistics:
- ProfileStatisticsService for per-profile metric families
- AccountStatisticsService for merged account views
- CacheService for the cache-aside layer both sit behind
- calculate_milestones for threshold-based achievements
"""

from watchstats.statistics.account_service import AccountStatisticsService
from watchstats.statistics.cache import (
    CacheService,
    CacheStore,
    MemoryCacheStore,
    account_key,
    profile_key,
)
from watchstats.statistics.errors import (
    CacheUnavailableError,
    ErrorReporter,
    StatisticsDependencyError,
    StatisticsError,
    StatisticsNotFoundError,
    StatisticsValidationError,
)
from watchstats.statistics.factory import StatisticsServices, build_statistics_services
from watchstats.statistics.milestones import MILESTONE_THRESHOLDS, calculate_milestones
from watchstats.statistics.models import (
    AbandonmentRiskStats,
    AccountStatistics,
    ActivityTimeline,
    BingeWatchingStats,
    ContentDepthStats,
    ContentDiscoveryStats,
    Milestone,
    MilestoneStats,
    MilestoneType,
    Profile,
    ProfileStatistics,
    SeasonalViewingStats,
    StatisticsMetric,
    TimeToWatchStats,
    UnairedContentStats,
    VelocityTrend,
    WatchingVelocityStats,
    WatchStatus,
    WatchStreakStats,
)
from watchstats.statistics.profile_service import ProfileStatisticsService
from watchstats.statistics.sources import ProfileDirectory, StatisticsDataSource

__all__ = [
    # Services
    "AccountStatisticsService",
    "ProfileStatisticsService",
    "StatisticsServices",
    "build_statistics_services",
    # Cache
    "CacheService",
    "CacheStore",
    "MemoryCacheStore",
    "account_key",
    "profile_key",
    # Collaborators
    "ErrorReporter",
    "ProfileDirectory",
    "StatisticsDataSource",
    # Errors
    "CacheUnavailableError",
    "StatisticsDependencyError",
    "StatisticsError",
    "StatisticsNotFoundError",
    "StatisticsValidationError",
    # Milestones
    "MILESTONE_THRESHOLDS",
    "calculate_milestones",
    # Models
    "AbandonmentRiskStats",
    "AccountStatistics",
    "ActivityTimeline",
    "BingeWatchingStats",
    "ContentDepthStats",
    "ContentDiscoveryStats",
    "Milestone",
    "MilestoneStats",
    "MilestoneType",
    "Profile",
    "ProfileStatistics",
    "SeasonalViewingStats",
    "StatisticsMetric",
    "TimeToWatchStats",
    "UnairedContentStats",
    "VelocityTrend",
    "WatchingVelocityStats",
    "WatchStatus",
    "WatchStreakStats",
]
