"""
Per-client request rate limiting
"""
import time
from collections import deque
from fastapi import Request, HTTPException
from typing import Callable, Deque, Dict, List, Optional, Tuple
import logging

import redis

logger = logging.getLogger(__name__)

# (window name, window seconds)
MINUTE = ("minute", 60)
HOUR = ("hour", 3600)

# Seconds between full sweeps of idle clients
SWEEP_INTERVAL = 60


class RateLimiter:
    """
    Counts requests per client in a minute and an hour window

    Without Redis each process keeps a sliding log of request timestamps.
    With Redis, fixed-window counters are shared by every worker; if Redis
    starts failing the limiter logs it and continues in memory.
    A request is only charged to its windows when it passes every limit.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        requests_per_hour: int = 1000,
        redis_client: Optional[redis.Redis] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        self.limits = {MINUTE: requests_per_minute, HOUR: requests_per_hour}
        self.redis_client = redis_client
        self.clock = clock or time.time

        # {(window, client_id): timestamps, oldest first}; never holds empty logs
        self._log: Dict[Tuple[tuple, str], Deque[float]] = {}
        self._last_sweep = 0.0

    @property
    def backend(self) -> str:
        return "redis" if self.redis_client is not None else "memory"

    def _get_client_id(self, request: Request) -> str:
        """Users are limited by their id, anonymous callers by address"""
        user_id = request.headers.get("x-user-id")
        if user_id:
            return f"user:{user_id}"

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _limit_exceeded(self, client_id: str, window: tuple, limit: int) -> HTTPException:
        name, seconds = window
        logger.warning(f"Rate limit exceeded ({name}): {client_id}")
        return HTTPException(
            status_code=429,
            detail={
                "error": "rate_limit_exceeded",
                "message": f"Too many requests. Limit: {limit} requests per {name}",
                "retry_after": seconds
            }
        )

    def _prune(self, key: Tuple[tuple, str], now: float) -> int:
        """Drop timestamps outside the window; returns how many remain"""
        timestamps = self._log.get(key)
        if timestamps is None:
            return 0

        cutoff = now - key[0][1]
        while timestamps and timestamps[0] <= cutoff:
            timestamps.popleft()

        if not timestamps:
            del self._log[key]
            return 0
        return len(timestamps)

    def _sweep(self, now: float) -> None:
        """Forget clients with nothing left in any window"""
        if now - self._last_sweep < SWEEP_INTERVAL:
            return
        self._last_sweep = now

        for key in list(self._log):
            self._prune(key, now)

    def _check_memory(self, client_id: str, now: float) -> None:
        self._sweep(now)

        keys = []
        for window, limit in self.limits.items():
            key = (window, client_id)
            if self._prune(key, now) >= limit:
                raise self._limit_exceeded(client_id, window, limit)
            keys.append(key)

        for key in keys:
            self._log.setdefault(key, deque()).append(now)

    def _check_redis(self, client_id: str, now: float) -> None:
        """
        INCR each fixed-window counter; a rejected request gives back
        what it already took so 429s never fill the window
        """
        charged: List[str] = []
        for window, limit in self.limits.items():
            name, seconds = window
            key = f"ratelimit:{client_id}:{name}:{int(now) // seconds}"

            pipe = self.redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, seconds)
            count, _ = pipe.execute()
            charged.append(key)

            if int(count) > limit:
                refund = self.redis_client.pipeline()
                for charged_key in charged:
                    refund.decr(charged_key)
                refund.execute()
                raise self._limit_exceeded(client_id, window, limit)

    async def check_rate_limit(self, request: Request) -> None:
        """
        Count the request against every window

        Raises:
            HTTPException: 429 with retry_after once a window is full
        """
        client_id = self._get_client_id(request)
        now = self.clock()

        if self.redis_client is not None:
            try:
                self._check_redis(client_id, now)
                return
            except redis.RedisError as e:
                logger.error(f"Redis rate limit check failed, switching to memory: {str(e)}")
                self.redis_client = None

        self._check_memory(client_id, now)
        logger.debug(f"Rate limit check passed: {client_id}")

    def close(self) -> None:
        if self.redis_client is not None:
            self.redis_client.close()
            self.redis_client = None


def connect_redis(url: str) -> Optional[redis.Redis]:
    """Connected client, or None when Redis is unreachable"""
    try:
        client = redis.from_url(url, decode_responses=True, socket_connect_timeout=5)
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"Redis connection failed: {str(e)}. Using in-memory rate limiting.")
        return None

    logger.info("Redis rate limiting enabled")
    return client


# Global instance
from app.config import settings
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR,
    redis_client=connect_redis(settings.REDIS_URL) if settings.RATE_LIMIT_BACKEND == "redis" else None
)
