"""
Rate Limiting Middleware

Per-client rate limiting using Redis.

ARCHITECTURE: Token bucket in Redis. Authenticated requests are keyed by
user id, anonymous ones (the public tracking endpoint, login) by client
IP.

PRODUCTION NOTES:
- Redis is a single point of failure (use Redis Cluster/Sentinel)
- Behind a proxy the client IP is the proxy's unless uvicorn runs with
  --proxy-headers
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import redis
import time
import logging
from webforge.config import get_settings
from webforge.core.exceptions import RateLimitExceeded
from webforge.core.security import decode_token

logger = logging.getLogger(__name__)
settings = get_settings()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Token bucket rate limiter per user or client IP.

    Degrades to no limiting when Redis is unavailable.
    """

    def __init__(self, app, enabled: bool = None):
        super().__init__(app)

        self.enabled = settings.RATE_LIMIT_ENABLED if enabled is None else enabled
        self.redis_available = False
        self.redis_client = None

        self.excluded_paths = [
            "/docs",
            "/redoc",
            "/openapi.json",
            "/health",
        ]

        if not self.enabled:
            logger.info("Rate limiting disabled by configuration")
            return

        try:
            self.redis_client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            self.redis_client.ping()
            self.redis_available = True
            logger.info("Redis connection established for rate limiting")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            # Availability over strict limiting
            logger.error(f"Redis connection failed, rate limiting disabled: {e}")

    async def dispatch(self, request: Request, call_next):
        if not self.redis_available:
            return await call_next(request)

        if request.url.path == "/" or any(request.url.path.startswith(path) for path in self.excluded_paths):
            return await call_next(request)

        identifier = self._get_client_identifier(request)
        allowed, retry_after = self._check_rate_limit(identifier)

        if not allowed:
            logger.warning(
                f"Rate limit exceeded for {identifier}",
                extra={"request_id": getattr(request.state, "request_id", None)}
            )
            # Raised exceptions don't reach the app's handlers from here
            exc = RateLimitExceeded(retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.detail, "type": exc.error_type, "retry_after": retry_after},
                headers=exc.headers
            )

        return await call_next(request)

    def _check_rate_limit(self, identifier: str, now: float = None) -> tuple[bool, int]:
        """
        Take one token from the client's bucket.

        Returns: (allowed: bool, retry_after: int)

        The bucket is a Redis hash {tokens, updated_at} holding at most
        RATE_LIMIT_BURST tokens and refilling at RATE_LIMIT_PER_MINUTE. It
        expires once it would have refilled completely.
        """
        refill_per_second = settings.RATE_LIMIT_PER_MINUTE / 60.0
        burst = settings.RATE_LIMIT_BURST
        key = f"rate_limit:{identifier}"
        ttl = int(burst / refill_per_second) + 1
        now = time.time() if now is None else now

        try:
            tokens, updated_at = self.redis_client.hmget(key, "tokens", "updated_at")

            if tokens is None:
                tokens = float(burst)
            else:
                elapsed = max(0.0, now - float(updated_at or now))
                tokens = min(float(burst), float(tokens) + elapsed * refill_per_second)

            allowed = tokens >= 1
            if allowed:
                tokens -= 1

            pipe = self.redis_client.pipeline()
            pipe.hset(key, mapping={"tokens": tokens, "updated_at": now})
            pipe.expire(key, ttl)
            pipe.execute()

            if allowed:
                return True, 0
            return False, int((1 - tokens) / refill_per_second) + 1

        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            return True, 0

    def _get_client_identifier(self, request: Request) -> str:
        """User id from a valid bearer token, else the client IP."""
        auth = request.headers.get("authorization", "")
        if auth.lower().startswith("bearer "):
            payload = decode_token(auth[7:].strip())
            if payload and payload.get("sub"):
                return f"user:{payload['sub']}"
        host = request.client.host if request.client else "unknown"
        return f"ip:{host}"
