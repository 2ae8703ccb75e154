"""Utility functions for the generation engine."""

from .rate_limiter import RateLimiter
from .retry import (
    BackoffRetrier,
    RetryPolicy,
    classify_failure,
    failure_kind_of,
    parse_retry_delay,
)

__all__ = [
    "RateLimiter",
    "BackoffRetrier",
    "RetryPolicy",
    "classify_failure",
    "failure_kind_of",
    "parse_retry_delay",
]
