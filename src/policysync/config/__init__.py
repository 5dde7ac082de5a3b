"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .gcs import DEFAULT_GCS_BASE_URL, GcsConfig, get_gcs_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reconcile import ReconcileConfig, get_reconcile_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_GCS_BASE_URL",
    "ConfigurationError",
    "DatabaseConfig",
    "GcsConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReconcileConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_gcs_config",
    "get_reconcile_config",
    "get_storage_config",
    "require_env_vars",
]
