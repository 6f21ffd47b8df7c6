"""Cache-aside layer for statistics.

``CacheService.get_or_set`` returns a live cached value or computes, stores and
returns a fresh one. Keys are namespaced ``profile_{id}_{metric}`` and
``account_{id}_{metric}``; see ``profile_key`` / ``account_key``.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from watchstats.statistics.errors import CacheUnavailableError
from watchstats.statistics.models import StatisticsMetric

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _is_cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


# =============================================================================
# Cache Keys
# =============================================================================

PROFILE_SCOPE = "profile"
ACCOUNT_SCOPE = "account"


def _scoped_key(scope: str, owner_id: int | str, metric: StatisticsMetric, window: int | None) -> str:
    key = f"{scope}_{owner_id}_{metric.value}"
    return key if window is None else f"{key}_{window}"


def profile_key(profile_id: int | str, metric: StatisticsMetric, window: int | None = None) -> str:
    """Cache key for a profile-level metric, e.g. ``profile_7_milestone_stats``.

    Metrics computed over a look-back window append it: ``profile_7_watching_velocity_30``.
    """
    return _scoped_key(PROFILE_SCOPE, profile_id, metric, window)


def account_key(account_id: int | str, metric: StatisticsMetric, window: int | None = None) -> str:
    """Cache key for an account-level metric, e.g. ``account_3_statistics``."""
    return _scoped_key(ACCOUNT_SCOPE, account_id, metric, window)


# =============================================================================
# Backing Stores
# =============================================================================


class CacheStore(ABC):
    """Key/value store with per-entry TTL and explicit delete."""

    @abstractmethod
    def get(self, key: str) -> tuple[bool, Any]:
        """Return ``(True, value)`` for a live entry, ``(False, None)`` otherwise."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: int) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> int:
        """Remove an entry, returning the number of entries removed (0 or 1)."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class MemoryCacheStore(CacheStore):
    """In-memory store with TTL support.

    Safe for single-threaded async use (no locking needed).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize store.

        Args:
            clock: Source of the current time in seconds
        """
        self._cache: dict[str, tuple[Any, float]] = {}
        self._clock = clock

    def get(self, key: str) -> tuple[bool, Any]:
        """Get value from cache if not expired.

        Args:
            key: Cache key

        Returns:
            ``(found, value)``; expired entries are dropped and reported missing
        """
        if key not in self._cache:
            return False, None

        value, expires_at = self._cache[key]
        if self._clock() >= expires_at:
            del self._cache[key]
            return False, None

        return True, value

    def set(self, key: str, value: Any, ttl: int) -> None:
        """Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Seconds until the entry expires
        """
        self._cache[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> int:
        if key not in self._cache:
            return 0
        del self._cache[key]
        return 1

    def keys(self) -> list[str]:
        now = self._clock()
        return [k for k, (_, expires_at) in self._cache.items() if now < expires_at]

    def clear(self) -> None:
        """Clear all cached values."""
        self._cache.clear()

    def cleanup_expired(self) -> int:
        """Remove expired entries from cache.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [k for k, (_, expires_at) in self._cache.items() if now >= expires_at]
        for key in expired:
            del self._cache[key]
        return len(expired)


# =============================================================================
# Cache Service
# =============================================================================


class CacheService:
    """Read-through cache façade shared by the statistics services.

    A failing compute is never cached and its error propagates unchanged.
    Concurrent misses on the same key may each run ``compute`` unless
    ``single_flight`` is enabled, in which case they share one in-flight call.

    Example:
        cache = CacheService()
        stats = await cache.get_or_set("profile_7_statistics", load_stats, 1800)
    """

    def __init__(
        self,
        store: CacheStore | None = None,
        default_ttl: int = 300,
        single_flight: bool = False,
    ):
        """Initialize cache service.

        Args:
            store: Backing store. Uses a fresh MemoryCacheStore if None.
            default_ttl: TTL in seconds when ``get_or_set`` is given none
            single_flight: Deduplicate concurrent computes per key
        """
        self._store = store if store is not None else MemoryCacheStore()
        self._default_ttl = default_ttl
        self._single_flight = single_flight
        self._in_flight: dict[str, asyncio.Future[Any]] = {}
        self._hits = 0
        self._misses = 0

    async def get_or_set(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl: int | None = None,
    ) -> T:
        """Get a cached value or compute and cache it.

        Args:
            key: Cache key
            compute: Zero-argument coroutine function producing the value
            ttl: TTL in seconds for a freshly computed value

        Returns:
            The cached or newly computed value

        Raises:
            CacheUnavailableError: If the backing store fails
            Exception: Whatever ``compute`` raises, unchanged
        """
        found, value = self._read(key)
        if found:
            self._hits += 1
            logger.debug("cache_hit", key=key)
            return value

        self._misses += 1
        logger.debug("cache_miss", key=key)

        if self._single_flight:
            pending = self._in_flight.get(key)
            if pending is None:
                return await self._compute_shared(key, compute, ttl)
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                # The owning caller was cancelled, this one was not: compute afresh
                if not pending.cancelled() or _is_cancelling():
                    raise
                logger.debug("cache_shared_compute_abandoned", key=key)
                return await self.get_or_set(key, compute, ttl)

        return await self._compute_and_store(key, compute, ttl)

    async def _compute_and_store(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl: int | None,
    ) -> T:
        try:
            value = await compute()
        except Exception as e:
            logger.warning("cache_compute_failed", key=key, error=str(e))
            raise

        self._write(key, value, self._default_ttl if ttl is None else ttl)
        return value

    async def _compute_shared(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl: int | None,
    ) -> T:
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            value = await self._compute_and_store(key, compute, ttl)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Waiters re-raise it; mark retrieved so an unawaited future stays quiet
            future.exception()
            raise
        else:
            future.set_result(value)
            return value
        finally:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    def _read(self, key: str) -> tuple[bool, Any]:
        try:
            return self._store.get(key)
        except Exception as e:
            logger.error("cache_store_read_failed", key=key, error=str(e))
            raise CacheUnavailableError(f"Cache read failed for key {key}: {e}") from e

    def _write(self, key: str, value: Any, ttl: int) -> None:
        try:
            self._store.set(key, value, ttl)
        except Exception as e:
            logger.error("cache_store_write_failed", key=key, error=str(e))
            raise CacheUnavailableError(f"Cache write failed for key {key}: {e}") from e

    # =========================================================================
    # Invalidation
    # =========================================================================

    def invalidate(self, key: str) -> int:
        """Remove a value from the cache.

        Returns:
            Number of entries deleted (0 or 1)
        """
        try:
            removed = self._store.delete(key)
        except Exception as e:
            logger.error("cache_store_delete_failed", key=key, error=str(e))
            raise CacheUnavailableError(f"Cache delete failed for key {key}: {e}") from e
        if removed:
            logger.debug("cache_invalidated", key=key)
        return removed

    def invalidate_pattern(self, pattern: str) -> int:
        """Remove every key containing ``pattern``.

        Returns:
            Number of entries deleted
        """
        return sum(self.invalidate(key) for key in self.keys() if pattern in key)

    def _invalidate_scope(self, prefix: str) -> int:
        return sum(self.invalidate(key) for key in self.keys() if key.startswith(prefix))

    def invalidate_profile_statistics(self, profile_id: int | str) -> int:
        """Remove every cached statistics metric for a profile, all windows included."""
        return self._invalidate_scope(f"{PROFILE_SCOPE}_{profile_id}_")

    def invalidate_account_statistics(self, account_id: int | str) -> int:
        """Remove every cached statistics aggregate for an account, all windows included."""
        return self._invalidate_scope(f"{ACCOUNT_SCOPE}_{account_id}_")

    def flush_all(self) -> None:
        """Flush the entire cache."""
        try:
            self._store.clear()
        except Exception as e:
            logger.error("cache_store_clear_failed", error=str(e))
            raise CacheUnavailableError(f"Cache flush failed: {e}") from e
        logger.info("cache_flushed")

    def keys(self) -> list[str]:
        """Get all live keys currently in the cache."""
        try:
            return self._store.keys()
        except Exception as e:
            logger.error("cache_store_keys_failed", error=str(e))
            raise CacheUnavailableError(f"Cache key listing failed: {e}") from e

    def get_stats(self) -> dict[str, int]:
        """Hit/miss counters and current key count."""
        return {
            "hits": self._hits,
            "misses": self._misses,
            "keys": len(self.keys()),
        }
