"""
Caching utilities for shared access-control state.

Provides centralized cache management with consistent keys and TTLs.
"""
import logging
import time
from typing import Any, Optional
from django.core.cache import cache

logger = logging.getLogger(__name__)


class CacheKeys:
    """Centralized cache key definitions with consistent naming."""

    # Global permission version, bumped on every RBAC change (no TTL)
    RBAC_VERSION = "rbac:permissions:version"

    # Free-access routes, keyed by permission version
    RBAC_FREE_ROUTES = "rbac:free_routes:{version}"

    # Health check
    HEALTH_CHECK = "health:check"

    @classmethod
    def format(cls, key_template: str, **kwargs) -> str:
        """Format a cache key with provided parameters."""
        return key_template.format(**kwargs)


class CacheTTL:
    """Cache TTL (Time To Live) constants in seconds."""

    RBAC_VERSION = None  # never expires
    RBAC_FREE_ROUTES = 3600  # 1 hour
    HEALTH_CHECK = 10


class CacheService:
    """Service for managing cached data with consistent patterns."""

    @staticmethod
    def get(key: str, default: Any = None) -> Any:
        """
        Get value from cache.

        Args:
            key: Cache key
            default: Default value if key not found

        Returns:
            Cached value or default
        """
        try:
            value = cache.get(key, default)
            if value is not None:
                logger.debug(f"Cache HIT: {key}")
            else:
                logger.debug(f"Cache MISS: {key}")
            return value
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {str(e)}")
            return default

    @staticmethod
    def set(key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds (None keeps the value forever)

        Returns:
            True if successful, False otherwise
        """
        try:
            cache.set(key, value, timeout=ttl)
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {str(e)}")
            return False

    @staticmethod
    def delete(key: str) -> bool:
        """Delete value from cache."""
        try:
            cache.delete(key)
            logger.debug(f"Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {str(e)}")
            return False

    @staticmethod
    def get_counter(key: str) -> int:
        """
        Read a monotonically increasing counter, seeding it when absent.

        A missing counter is seeded with the current time in milliseconds
        so that a counter lost to eviction or a cache flush never comes back
        with a value an older reader could have stored.

        Args:
            key: Cache key of the counter

        Returns:
            Current counter value
        """
        value = CacheService.get(key)
        if value is None:
            cache.add(key, int(time.time() * 1000), timeout=None)
            value = cache.get(key)
        return value

    @staticmethod
    def bump_counter(key: str) -> int:
        """
        Atomically increment a counter created by get_counter.

        Returns:
            The new counter value
        """
        try:
            return cache.incr(key)
        except ValueError:
            # Counter missing: seed it, then increment so concurrent
            # bumpers still observe distinct values.
            cache.add(key, int(time.time() * 1000), timeout=None)
            return cache.incr(key)
