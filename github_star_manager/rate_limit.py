"""Keeps a client's TokenBucket in step with GitHub's rate-limit headers."""

from dataclasses import dataclass

import httpx

from .limiter import TokenBucket

REMAINING_HEADER = "x-ratelimit-remaining"
LIMIT_HEADER = "x-ratelimit-limit"
RESET_HEADER = "x-ratelimit-reset"
RETRY_AFTER_HEADER = "retry-after"


@dataclass(frozen=True)
class RateLimitSnapshot:
    """Budget as reported by one response. Absent headers stay None."""

    remaining: int
    limit: int | None = None
    reset_at: int | None = None


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_rate_limit(headers) -> RateLimitSnapshot | None:
    """Extract remaining/limit/reset from response headers.

    Returns None when there is no usable remaining count, which callers treat
    as "no update".
    """
    headers = httpx.Headers(headers or {})
    remaining = _parse_int(headers.get(REMAINING_HEADER))
    if remaining is None:
        return None
    return RateLimitSnapshot(
        remaining=remaining,
        limit=_parse_int(headers.get(LIMIT_HEADER)),
        reset_at=_parse_int(headers.get(RESET_HEADER)),
    )


def parse_reset_at(headers) -> int | None:
    return _parse_int(httpx.Headers(headers or {}).get(RESET_HEADER))


def parse_retry_after(headers) -> float | None:
    val = httpx.Headers(headers or {}).get(RETRY_AFTER_HEADER)
    if val is None:
        return None
    try:
        return float(val)
    except ValueError:
        return None


def sync_rate_limit(limiter: TokenBucket, headers) -> RateLimitSnapshot | None:
    """Feed a response's rate-limit headers into the limiter.

    Runs for error responses as well as successes; a 403 from an exhausted
    quota carries the most useful numbers of all.
    """
    snapshot = parse_rate_limit(headers)
    if snapshot is None:
        return None
    capacity = snapshot.limit if snapshot.limit is not None else limiter.capacity
    limiter.observe(snapshot.remaining, capacity, snapshot.reset_at)
    return snapshot
