"""Cloud Storage IAM API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float, optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_GCS_BASE_URL = "https://storage.googleapis.com/storage/v1"
GCS_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class GcsConfig:
    """Holds credentials and HTTP settings for the bucket IAM API."""

    access_token: str
    resilience: ResilienceConfig
    user_project: str | None = None


def get_gcs_config(*, resilience: ResilienceConfig | None = None) -> GcsConfig:
    values = require_env_vars(("GCS_ACCESS_TOKEN",))
    base_url = optional_env_var("GCS_BASE_URL") or DEFAULT_GCS_BASE_URL
    return GcsConfig(
        access_token=values["GCS_ACCESS_TOKEN"],
        user_project=optional_env_var("GCS_USER_PROJECT"),
        resilience=resilience
        or ResilienceConfig(
            name="gcs",
            base_url=base_url,
            timeout_seconds=env_float("GCS_TIMEOUT_SECONDS", GCS_TIMEOUT_SECONDS, minimum=0.1),
            retry=RetryPolicy(),
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        ),
    )
