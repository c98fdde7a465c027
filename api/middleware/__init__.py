"""API middleware for rate limiting."""

from api.middleware.rate_limiter import RateLimitDecision, TokenBucketRateLimiter

__all__ = ["RateLimitDecision", "TokenBucketRateLimiter"]
