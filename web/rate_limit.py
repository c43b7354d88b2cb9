"""Fixed-window rate limiting for the JSON API.

Counters live in process memory, keyed by limit type and client. Expired
windows are dropped lazily when a key is checked again, and by a periodic
sweep run from the application lifespan.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import HTTPException, Request, Response, status

from metrics.config import RATE_LIMITS

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_time: int  # epoch seconds
    retry_after: int  # seconds, 0 when allowed


@dataclass
class _Window:
    count: int
    reset_time: float


class FixedWindowRateLimiter:
    """Count requests per key inside fixed windows."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def check(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        """Register one request for key and tell whether it is allowed.

        A rejected request does not count towards the window.
        """
        now = self._clock()

        with self._lock:
            window = self._windows.get(key)
            if window is None or window.reset_time <= now:
                window = _Window(count=0, reset_time=now + window_seconds)
                self._windows[key] = window

            if window.count >= max_requests:
                retry_after = max(1, int(window.reset_time - now + 0.999))
                return RateLimitResult(
                    allowed=False,
                    limit=max_requests,
                    remaining=0,
                    reset_time=int(window.reset_time),
                    retry_after=retry_after,
                )

            window.count += 1
            return RateLimitResult(
                allowed=True,
                limit=max_requests,
                remaining=max_requests - window.count,
                reset_time=int(window.reset_time),
                retry_after=0,
            )

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, window in self._windows.items() if window.reset_time <= now]
            for key in expired:
                del self._windows[key]

        if expired:
            logger.debug("Rate limiter sweep removed %d expired window(s)", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)


def _client_key(request: Request) -> str:
    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"


def rate_limit(limit_type: str = "general"):
    """FastAPI dependency enforcing one of the RATE_LIMITS presets.

    Sets X-RateLimit-* headers on the response and raises 429 with a
    Retry-After header once the window is exhausted.
    """
    if limit_type not in RATE_LIMITS:
        raise ValueError(f"Unknown rate limit type: {limit_type}")

    max_requests, window_seconds = RATE_LIMITS[limit_type]

    async def dependency(request: Request, response: Response) -> None:
        limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
        result = limiter.check(f"{limit_type}:{_client_key(request)}", max_requests, window_seconds)

        headers = {
            "X-RateLimit-Limit": str(result.limit),
            "X-RateLimit-Remaining": str(result.remaining),
            "X-RateLimit-Reset": str(result.reset_time),
        }

        if not result.allowed:
            logger.info("Rate limit %r exceeded for %s", limit_type, _client_key(request))
            headers["Retry-After"] = str(result.retry_after)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded",
                headers=headers,
            )

        response.headers.update(headers)

    return dependency
