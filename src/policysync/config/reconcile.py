"""Control-loop defaults for policy reconciliation."""

from __future__ import annotations

from dataclasses import dataclass

from policysync.domain.model.policy import REQUIRED_POLICY_VERSION

from .env import env_float, env_int

DEFAULT_MAX_CONCURRENT_RECONCILES = 4
DEFAULT_POLL_INTERVAL_SECONDS = 60.0
DEFAULT_STUCK_THRESHOLD = 3
DEFAULT_BACKOFF_BASE_SECONDS = 5.0
DEFAULT_BACKOFF_MAX_SECONDS = 300.0


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    required_policy_version: int = REQUIRED_POLICY_VERSION
    max_concurrent_reconciles: int = DEFAULT_MAX_CONCURRENT_RECONCILES
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    stuck_threshold: int = DEFAULT_STUCK_THRESHOLD
    backoff_base_seconds: float = DEFAULT_BACKOFF_BASE_SECONDS
    backoff_max_seconds: float = DEFAULT_BACKOFF_MAX_SECONDS

    def backoff_seconds(self, failure_count: int) -> float:
        """Delay before the next attempt after ``failure_count`` consecutive failures."""

        if failure_count <= 0:
            return 0.0
        delay = self.backoff_base_seconds * 2 ** (failure_count - 1)
        return min(delay, self.backoff_max_seconds)


def get_reconcile_config() -> ReconcileConfig:
    return ReconcileConfig(
        max_concurrent_reconciles=env_int(
            "POLICYSYNC_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENT_RECONCILES, minimum=1
        ),
        poll_interval_seconds=env_float(
            "POLICYSYNC_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_SECONDS, minimum=0.0
        ),
        stuck_threshold=env_int("POLICYSYNC_STUCK_THRESHOLD", DEFAULT_STUCK_THRESHOLD, minimum=1),
        backoff_base_seconds=env_float(
            "POLICYSYNC_BACKOFF_BASE", DEFAULT_BACKOFF_BASE_SECONDS, minimum=0.0
        ),
        backoff_max_seconds=env_float(
            "POLICYSYNC_BACKOFF_MAX", DEFAULT_BACKOFF_MAX_SECONDS, minimum=0.0
        ),
    )
