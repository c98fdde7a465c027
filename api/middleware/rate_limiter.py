"""
Per-identity token-bucket rate limiter.

An instance is created by the application and injected into the chat
orchestrator; there is no module-level request history. Each identity owns a
bucket of ``capacity`` tokens refilled continuously over ``window_seconds``.
A bucket that has refilled to capacity carries no information and expires:
it is dropped on the next ``prune()``, which ``acquire()`` runs periodically.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from api.errors import RateLimitExceeded

logger = structlog.get_logger(__name__)


@dataclass
class _Bucket:
    tokens: float
    updated_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate-limit check."""

    allowed: bool
    remaining: int
    retry_after_seconds: int = 0


class TokenBucketRateLimiter:
    """Token bucket keyed by identity (user id, or client IP when anonymous)."""

    def __init__(
        self,
        capacity: int = 30,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        prune_every: int = 256,
    ):
        """
        Args:
            capacity: Requests allowed in a burst (and per window).
            window_seconds: Time for an empty bucket to refill completely.
            clock: Monotonic time source, injectable for tests.
            prune_every: Run ``prune()`` after this many ``check()`` calls.
        """
        if capacity < 1 or window_seconds <= 0:
            raise ValueError("capacity must be >= 1 and window_seconds > 0")
        if prune_every < 1:
            raise ValueError("prune_every must be >= 1")
        self.capacity = capacity
        self.window_seconds = window_seconds
        self.refill_rate = capacity / window_seconds
        self._clock = clock
        self._prune_every = prune_every
        self._checks = 0
        self._buckets: Dict[str, _Bucket] = {}

    @classmethod
    def from_settings(cls, settings) -> "TokenBucketRateLimiter":
        return cls(
            capacity=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )

    def __len__(self) -> int:
        return len(self._buckets)

    def _refill(self, bucket: _Bucket, now: float) -> None:
        elapsed = max(0.0, now - bucket.updated_at)
        bucket.tokens = min(self.capacity, bucket.tokens + elapsed * self.refill_rate)
        bucket.updated_at = now

    def check(self, identity: str) -> RateLimitDecision:
        """Consume one token for ``identity`` if available."""
        now = self._clock()
        self._checks += 1
        if self._checks % self._prune_every == 0:
            self.prune(now)

        bucket = self._buckets.get(identity)
        if bucket is None:
            bucket = _Bucket(tokens=float(self.capacity), updated_at=now)
            self._buckets[identity] = bucket
        else:
            self._refill(bucket, now)

        if bucket.tokens >= 1.0:
            bucket.tokens -= 1.0
            return RateLimitDecision(allowed=True, remaining=int(bucket.tokens))

        retry_after = math.ceil((1.0 - bucket.tokens) / self.refill_rate)
        return RateLimitDecision(allowed=False, remaining=0, retry_after_seconds=max(1, retry_after))

    def acquire(self, identity: str) -> RateLimitDecision:
        """Like ``check()`` but raises when the identity is over its budget.

        Raises:
            RateLimitExceeded: carries the number of seconds until a token frees up.
        """
        decision = self.check(identity)
        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded",
                identity=identity,
                capacity=self.capacity,
                window_seconds=self.window_seconds,
                retry_after_seconds=decision.retry_after_seconds,
            )
            raise RateLimitExceeded(identity, decision.retry_after_seconds)

        logger.debug("Rate limit check passed", identity=identity, remaining=decision.remaining)
        return decision

    def prune(self, now: Optional[float] = None) -> int:
        """Drop buckets that have refilled to capacity; return how many were dropped."""
        now = self._clock() if now is None else now
        expired = []
        for identity, bucket in self._buckets.items():
            self._refill(bucket, now)
            if bucket.tokens >= self.capacity:
                expired.append(identity)
        for identity in expired:
            del self._buckets[identity]
        return len(expired)

    def reset(self, identity: Optional[str] = None) -> None:
        """Forget one identity's bucket, or all of them."""
        if identity is None:
            self._buckets.clear()
        else:
            self._buckets.pop(identity, None)
