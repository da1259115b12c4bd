"""
Cache Layer

Redis-backed key/value cache with TTLs and JSON values.

Used for the token blacklist and for cheap-to-recompute lookups such as
template category lists. If Redis is disabled or unreachable an
in-process store is used instead. Its entries are per-worker and lost on
restart, so logout revocation only holds within one worker until Redis
is back.
"""
import json
import time
import logging
from typing import Any, Callable, Dict, Optional, Tuple

import redis

from webforge.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class Cache:
    """JSON cache over Redis with an in-process fallback."""

    def __init__(self, redis_url: Optional[str] = None, enabled: bool = True, prefix: str = "webforge"):
        self.prefix = prefix
        self._local: Dict[str, Tuple[Optional[float], str]] = {}
        self.redis_client = None

        if not enabled:
            logger.info("Redis cache disabled, using in-process store")
            return

        try:
            self.redis_client = redis.from_url(
                redis_url or settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=2
            )
            self.redis_client.ping()
            logger.info("Redis connection established for cache")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.error(f"Redis connection failed, using in-process cache: {e}")
            self.redis_client = None

    @property
    def redis_available(self) -> bool:
        return self.redis_client is not None

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Any:
        """Return the cached value or None on a miss."""
        full_key = self._key(key)
        if self.redis_client is not None:
            try:
                raw = self.redis_client.get(full_key)
                return json.loads(raw) if raw is not None else None
            except redis.RedisError as e:
                logger.error(f"Redis error on get({key}): {e}")
                return None

        entry = self._local.get(full_key)
        if entry is None:
            return None
        expires_at, raw = entry
        if expires_at is not None and expires_at <= time.time():
            self._local.pop(full_key, None)
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store a JSON-serializable value. ttl=None uses the default TTL, 0 means no expiry."""
        full_key = self._key(key)
        ttl = settings.CACHE_DEFAULT_TTL if ttl is None else ttl
        raw = json.dumps(value, default=str)

        if self.redis_client is not None:
            try:
                if ttl > 0:
                    self.redis_client.setex(full_key, ttl, raw)
                else:
                    self.redis_client.set(full_key, raw)
                return
            except redis.RedisError as e:
                logger.error(f"Redis error on set({key}): {e}")
                return

        now = time.time()
        self._purge_expired(now)
        self._local[full_key] = (now + ttl if ttl > 0 else None, raw)

    def _purge_expired(self, now: float) -> None:
        # Keys like revoked:{jti} are written once and never read again
        expired = [k for k, (expires_at, _) in self._local.items() if expires_at is not None and expires_at <= now]
        for full_key in expired:
            del self._local[full_key]

    def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        full_keys = [self._key(k) for k in keys]
        if self.redis_client is not None:
            try:
                return int(self.redis_client.delete(*full_keys))
            except redis.RedisError as e:
                logger.error(f"Redis error on delete({keys}): {e}")
                return 0

        removed = 0
        for full_key in full_keys:
            if self._local.pop(full_key, None) is not None:
                removed += 1
        return removed

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def get_or_set(self, key: str, fetch: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Return the cached value, computing and storing it on a miss."""
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for key: {key}")
            return cached

        logger.debug(f"Cache miss for key: {key}")
        value = fetch()
        self.set(key, value, ttl)
        return value

    def clear(self) -> None:
        """Drop every key under this cache's prefix."""
        if self.redis_client is not None:
            try:
                for full_key in self.redis_client.scan_iter(f"{self.prefix}:*"):
                    self.redis_client.delete(full_key)
            except redis.RedisError as e:
                logger.error(f"Redis error on clear: {e}")
        self._local.clear()


_cache: Optional[Cache] = None


def get_cache() -> Cache:
    """Process-wide cache instance, created on first use."""
    global _cache
    if _cache is None:
        _cache = Cache(enabled=settings.CACHE_ENABLED)
    return _cache
