"""
Caching utilities for dashboard aggregates
Uses the configured Django cache (Redis when REDIS_URL is set)
"""
from django.conf import settings
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

DASHBOARD_CACHE_PREFIX = "dashboard"
# Bumped on every count change; old keys simply expire
DASHBOARD_VERSION_KEY = "dashboard:version"


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def get_dashboard_version():
    version = cache.get(DASHBOARD_VERSION_KEY)
    if version is None:
        version = 1
        cache.add(DASHBOARD_VERSION_KEY, version, None)
    return version


def cached_query(cache_ttl=None, key_prefix="query"):
    """
    Decorator to cache expensive dashboard queries

    Usage:
        @cached_query(key_prefix="top_skus")
        def top_skus(location):
            # expensive query here
            return data
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            ttl = cache_ttl if cache_ttl is not None else settings.DASHBOARD_CACHE_TTL
            cache_key = make_cache_key(
                f"{DASHBOARD_CACHE_PREFIX}:{key_prefix}", get_dashboard_version(), *args, **kwargs
            )

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, ttl)
            return result
        return wrapper
    return decorator


def invalidate_dashboard_cache():
    """Invalidate all dashboard aggregates"""
    try:
        cache.incr(DASHBOARD_VERSION_KEY)
    except ValueError:
        # Key missing or evicted
        cache.set(DASHBOARD_VERSION_KEY, 2, None)
    logger.info("Invalidated dashboard cache")
