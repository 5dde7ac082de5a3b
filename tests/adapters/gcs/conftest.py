from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from policysync.adapters.http_resilience import ResilientClient
from policysync.config.gcs import DEFAULT_GCS_BASE_URL, GcsConfig
from policysync.config.http_resilience import ResilienceConfig

if TYPE_CHECKING:
    from collections.abc import Callable


type Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def gcs_config() -> GcsConfig:
    return GcsConfig(
        access_token="test-token",
        resilience=ResilienceConfig(name="gcs-test", base_url=DEFAULT_GCS_BASE_URL),
    )


@pytest.fixture
def mock_client_factory() -> Callable[[Handler], Callable[[ResilienceConfig], ResilientClient]]:
    """Build client factories whose HTTP traffic is served by ``handler``."""

    def build(handler: Handler) -> Callable[[ResilienceConfig], ResilientClient]:
        def factory(config: ResilienceConfig) -> ResilientClient:
            client = ResilientClient(config)
            client._client = httpx.AsyncClient(  # noqa: SLF001
                base_url=config.base_url or "",
                transport=httpx.MockTransport(handler),
            )
            return client

        return factory

    return build
