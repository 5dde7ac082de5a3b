"""Retry, rate-limit and timeout settings for outbound API clients."""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

# A full-document PUT is safe to repeat: the same body always yields the same policy.
IDEMPOTENT_POLICY_METHODS = frozenset({"GET", "PUT"})
TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    backoff_jitter: float = 1.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = IDEMPOTENT_POLICY_METHODS
    status_forcelist: frozenset[int] = TRANSIENT_STATUS_CODES
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    """HTTP behaviour of one remote API client.

    Responses are never cached; every policy read must reflect the live state.
    """

    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    user_agent: str | None = None
