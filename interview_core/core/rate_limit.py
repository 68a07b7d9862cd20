"""
Best-effort request rate limiting.

Fixed-window counters keyed by caller identity, with a temporary block
after repeated violations. Counters live in process memory: this is a
coarse abuse guard, not a correctness mechanism.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request

from interview_core.core.config import get_settings
from interview_core.core.errors import RateLimited

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    count: int
    reset_at: float
    violations: int = 0
    blocked_until: Optional[float] = None


@dataclass
class RateLimitResult:
    """Outcome of a single rate limit check."""
    ok: bool
    remaining: int
    reset_at: float
    blocked: bool = False
    blocked_until: Optional[float] = None
    violations: int = 0


class RateLimiter:
    """
    Fixed-window rate limiter.

    A key that keeps hitting the limit is blocked for ``block_seconds``
    once it has accumulated ``block_after_violations`` violations.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        block_after_violations: int = 5,
        block_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.block_after_violations = block_after_violations
        self.block_seconds = block_seconds
        self._clock = clock
        self._buckets: Dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitResult:
        """Count one request against ``key``."""
        now = self._clock()
        with self._lock:
            self._evict_expired(now)
            bucket = self._buckets.get(key)

            if bucket and bucket.blocked_until is not None:
                if now < bucket.blocked_until:
                    return RateLimitResult(
                        ok=False,
                        remaining=0,
                        reset_at=bucket.reset_at,
                        blocked=True,
                        blocked_until=bucket.blocked_until,
                        violations=bucket.violations,
                    )
                bucket.blocked_until = None

            if bucket is None or now > bucket.reset_at:
                bucket = _Bucket(count=1, reset_at=now + self.window_seconds)
                self._buckets[key] = bucket
                return RateLimitResult(ok=True, remaining=self.limit - 1, reset_at=bucket.reset_at)

            if bucket.count >= self.limit:
                bucket.violations += 1
                if bucket.violations >= self.block_after_violations:
                    bucket.blocked_until = now + self.block_seconds
                    logger.warning(f"Rate limit key blocked after {bucket.violations} violations: {key}")
                    return RateLimitResult(
                        ok=False,
                        remaining=0,
                        reset_at=bucket.reset_at,
                        blocked=True,
                        blocked_until=bucket.blocked_until,
                        violations=bucket.violations,
                    )
                return RateLimitResult(
                    ok=False,
                    remaining=0,
                    reset_at=bucket.reset_at,
                    violations=bucket.violations,
                )

            bucket.count += 1
            # Well-behaved callers earn their violation count back
            if bucket.violations and bucket.count < self.limit * 0.5:
                bucket.violations = 0
            return RateLimitResult(
                ok=True,
                remaining=self.limit - bucket.count,
                reset_at=bucket.reset_at,
            )

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _evict_expired(self, now: float) -> None:
        expired = [
            key for key, b in self._buckets.items()
            if now > b.reset_at and (b.blocked_until is None or now > b.blocked_until)
        ]
        for key in expired:
            del self._buckets[key]


def client_identity(request: Request) -> str:
    """Best-effort caller identity: first forwarded hop, then real IP, then peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


# Global limiter for the answer submission path (lazy loaded)
_answer_rate_limiter: Optional[RateLimiter] = None


def get_answer_rate_limiter() -> RateLimiter:
    """Get or create the answer submission rate limiter."""
    global _answer_rate_limiter
    if _answer_rate_limiter is None:
        settings = get_settings()
        _answer_rate_limiter = RateLimiter(
            limit=settings.answer_rate_limit,
            window_seconds=settings.answer_rate_window_seconds,
            block_after_violations=settings.rate_limit_block_after_violations,
            block_seconds=settings.rate_limit_block_seconds,
        )
    return _answer_rate_limiter


async def enforce_answer_rate_limit(request: Request) -> None:
    """FastAPI dependency guarding the answer submission endpoint."""
    key = f"answer:{client_identity(request)}"
    result = get_answer_rate_limiter().check(key)
    if not result.ok:
        raise RateLimited(
            "Rate limit exceeded. Try again later.",
            detail={"blocked": result.blocked, "violations": result.violations},
        )
