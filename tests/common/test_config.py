from __future__ import annotations

import pytest

from policysync.config import (
    DEFAULT_GCS_BASE_URL,
    ConfigurationError,
    MissingConfigurationError,
    ReconcileConfig,
    get_gcs_config,
    get_reconcile_config,
    require_env_vars,
)

RECONCILE_ENV = (
    "POLICYSYNC_MAX_CONCURRENCY",
    "POLICYSYNC_POLL_INTERVAL",
    "POLICYSYNC_STUCK_THRESHOLD",
    "POLICYSYNC_BACKOFF_BASE",
    "POLICYSYNC_BACKOFF_MAX",
)


@pytest.fixture
def clean_reconcile_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in RECONCILE_ENV:
        monkeypatch.delenv(name, raising=False)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_reports_all_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_A", raising=False)
    monkeypatch.setenv("MISSING_B", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_gcs_config_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GCS_ACCESS_TOKEN", raising=False)

    with pytest.raises(MissingConfigurationError):
        get_gcs_config()


def test_gcs_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GCS_ACCESS_TOKEN", "token")
    monkeypatch.delenv("GCS_BASE_URL", raising=False)
    monkeypatch.setenv("GCS_USER_PROJECT", "billing")

    config = get_gcs_config()

    assert config.access_token == "token"
    assert config.user_project == "billing"
    assert config.resilience.base_url == DEFAULT_GCS_BASE_URL
    assert config.resilience.ratelimit is not None


def test_gcs_config_base_url_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GCS_ACCESS_TOKEN", "token")
    monkeypatch.setenv("GCS_BASE_URL", "http://localhost:4443/storage/v1")

    assert get_gcs_config().resilience.base_url == "http://localhost:4443/storage/v1"


@pytest.mark.usefixtures("clean_reconcile_env")
def test_reconcile_config_defaults() -> None:
    config = get_reconcile_config()

    assert config == ReconcileConfig()
    assert config.required_policy_version == 3
    assert config.max_concurrent_reconciles == 4


@pytest.mark.usefixtures("clean_reconcile_env")
def test_reconcile_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("POLICYSYNC_MAX_CONCURRENCY", "8")
    monkeypatch.setenv("POLICYSYNC_POLL_INTERVAL", "2.5")

    config = get_reconcile_config()

    assert config.max_concurrent_reconciles == 8
    assert config.poll_interval_seconds == 2.5


@pytest.mark.usefixtures("clean_reconcile_env")
@pytest.mark.parametrize("value", ["zero", "0", "-1"])
def test_reconcile_config_rejects_bad_concurrency(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("POLICYSYNC_MAX_CONCURRENCY", value)

    with pytest.raises(ConfigurationError, match="POLICYSYNC_MAX_CONCURRENCY"):
        get_reconcile_config()


def test_backoff_doubles_and_caps() -> None:
    config = ReconcileConfig(backoff_base_seconds=5, backoff_max_seconds=30)

    assert [config.backoff_seconds(n) for n in range(6)] == [0.0, 5, 10, 20, 30, 30]
