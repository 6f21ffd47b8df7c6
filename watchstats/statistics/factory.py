"""Composition of the statistics services.

One CacheService is shared by reference between the profile- and
account-level services so both read and invalidate the same entries.
"""

from dataclasses import dataclass

from watchstats.config import Settings
from watchstats.config import settings as default_settings
from watchstats.logger import get_logger
from watchstats.statistics.account_service import AccountStatisticsService
from watchstats.statistics.cache import CacheService
from watchstats.statistics.errors import ErrorReporter
from watchstats.statistics.profile_service import ProfileStatisticsService
from watchstats.statistics.sources import ProfileDirectory, StatisticsDataSource

logger = get_logger(__name__)


@dataclass
class StatisticsServices:
    """The wired statistics services and the cache they share."""

    cache: CacheService
    error_reporter: ErrorReporter
    profiles: ProfileStatisticsService
    accounts: AccountStatisticsService


def build_statistics_services(
    data_source: StatisticsDataSource,
    profile_directory: ProfileDirectory,
    *,
    cache: CacheService | None = None,
    error_reporter: ErrorReporter | None = None,
    settings: Settings | None = None,
) -> StatisticsServices:
    """Build profile and account statistics services around one shared cache.

    Args:
        data_source: Aggregate query collaborator
        profile_directory: Resolves account profiles
        cache: Existing cache to share. Built from settings if None.
        error_reporter: Error reporter. Uses a new ErrorReporter if None.
        settings: Settings to read TTLs and limits from. Uses global settings if None.

    Returns:
        StatisticsServices bundle
    """
    settings = settings or default_settings
    cache = cache or CacheService(
        default_ttl=settings.cache_default_ttl,
        single_flight=settings.cache_single_flight,
    )
    error_reporter = error_reporter or ErrorReporter()

    profiles = ProfileStatisticsService(
        data_source,
        cache,
        error_reporter,
        ttl=settings.profile_stats_ttl,
    )
    accounts = AccountStatisticsService(
        profile_directory,
        profiles,
        cache,
        error_reporter,
        ttl=settings.account_stats_ttl,
        recent_achievements_limit=settings.recent_achievements_limit,
        top_binged_shows_limit=settings.top_binged_shows_limit,
        fastest_completions_limit=settings.fastest_completions_limit,
    )

    logger.info("statistics_services_built", **settings.get_safe_dict())
    return StatisticsServices(
        cache=cache,
        error_reporter=error_reporter,
        profiles=profiles,
        accounts=accounts,
    )
