"""
Vacancy API - IP-based rate limiting.

Leaky bucket with lazy refill, stored in the shared cache store under
"rate-limit:{ip}:{scope}". Each bucket holds the remaining allowance and the
time of the last refill; the allowance grows back at limit/window requests
per second, capped at `limit`.

The read-modify-write on a bucket is not atomic. Two requests from the same
client that read the bucket before either writes it back are both judged
against the same allowance, so bursts of concurrent requests can be admitted
beyond `limit` (last write wins). tests/test_rate_limit.py pins this down.

Routes opt in with a per-endpoint scope:

    @router.get("", dependencies=[Depends(rate_limited("vacancy:index"))])
"""
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request, Response
from slowapi.util import get_remote_address

from .cache import CacheError, CacheStore, build_key
from .exceptions import RateLimitExceeded

logger = logging.getLogger("vacancy_api.rate_limit")

# --- Endpoint scopes ---

SCOPE_LIST = "vacancy:index"
SCOPE_VIEW = "vacancy:view"
SCOPE_CREATE = "vacancy:create"
SCOPE_UPDATE = "vacancy:update"
SCOPE_DELETE = "vacancy:delete"
SCOPE_SEARCH = "vacancy:search"


@dataclass
class RateLimitDecision:
    """Outcome of one admission check."""
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the bucket is full again

    def headers(self) -> dict:
        return {
            "X-Rate-Limit-Limit": str(self.limit),
            "X-Rate-Limit-Remaining": str(self.remaining),
            "X-Rate-Limit-Reset": str(self.reset_after),
        }


class RateLimiter:
    """
    Per-client leaky-bucket admission control.

    Args:
        cache: Shared cache store holding the buckets.
        limit: Requests allowed per window.
        window: Window length in seconds; also the bucket TTL.
        fail_open: Admit (True) or reject (False) when the cache is unreachable.
        clock: Returns the current time in seconds.
    """

    def __init__(
        self,
        cache: CacheStore,
        limit: int,
        window: int,
        fail_open: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        if limit <= 0 or window <= 0:
            raise ValueError("Rate limit and window must be positive")
        self.cache = cache
        self.limit = limit
        self.window = window
        self.fail_open = fail_open
        self._clock = clock

    def _decision(self, allowed: bool, allowance: float) -> RateLimitDecision:
        missing = max(0.0, self.limit - allowance)
        return RateLimitDecision(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, int(math.floor(allowance))),
            reset_after=int(math.ceil(missing * self.window / self.limit)),
        )

    def _unavailable(self, key: str, exc: Exception) -> RateLimitDecision:
        if self.fail_open:
            logger.warning(f"Rate limit store unavailable, admitting request ({key}): {exc}")
            return self._decision(True, self.limit)
        logger.error(f"Rate limit store unavailable, rejecting request ({key}): {exc}")
        return self._decision(False, 0)

    def check(self, client_ip: str, scope: str) -> RateLimitDecision:
        """Decide whether to admit one request and record it in the bucket."""
        key = build_key("rate-limit", client_ip, scope)
        now = self._clock()

        try:
            bucket = self.cache.get(key)
        except CacheError as e:
            return self._unavailable(key, e)

        if bucket is None:
            allowance = self.limit - 1
            allowed = True
        else:
            elapsed = max(0.0, now - bucket["last_refill_at"])
            allowance = min(
                float(self.limit),
                bucket["allowance"] + elapsed * self.limit / self.window,
            )
            allowed = allowance >= 1
            if allowed:
                allowance -= 1

        try:
            self.cache.set(key, {"allowance": allowance, "last_refill_at": now}, self.window)
        except CacheError as e:
            if not self.fail_open:
                return self._unavailable(key, e)
            logger.warning(f"Failed to persist rate limit bucket {key}: {e}")

        if not allowed:
            logger.warning(f"Rate limit exceeded for IP: {client_ip} ({scope})")
        return self._decision(allowed, allowance)


def get_client_ip(request: Request, trust_forwarded_for: bool = False) -> str:
    """
    Client IP used as the rate limit key.

    X-Forwarded-For is honoured only when the app sits behind a proxy that
    sets it; otherwise any client could pick its own bucket.
    """
    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # X-Forwarded-For can contain multiple IPs; first is the client
            return forwarded.split(",")[0].strip()
    return get_remote_address(request) or "unknown"


def rate_limited(scope: str):
    """
    Build a FastAPI dependency enforcing the app's rate limiter for `scope`.

    The limiter lives on app.state.rate_limiter; None disables limiting.
    Rate limit headers are added to successful responses; rejections raise
    RateLimitExceeded, rendered as 429 by the exception handler in main.py.
    """
    def dependency(request: Request, response: Response) -> Optional[RateLimitDecision]:
        limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
        if limiter is None:
            return None

        trust_forwarded_for = getattr(request.app.state, "trust_forwarded_for", False)
        decision = limiter.check(get_client_ip(request, trust_forwarded_for), scope)
        if not decision.allowed:
            raise RateLimitExceeded(decision)

        response.headers.update(decision.headers())
        return decision

    return dependency
