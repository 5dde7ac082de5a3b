"""HTTP transport for Cloud Storage bucket IAM policies."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from policysync.adapters.http_resilience import ResilientClient
from policysync.config.gcs import GcsConfig, get_gcs_config
from policysync.domain.errors import PolicyNotFoundError, TransportError

from .schema import ErrorResponse
from .translator import parse_policy, serialize_policy

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from policysync.config.http_resilience import ResilienceConfig
    from policysync.domain.model import PolicyDocument
    from policysync.domain.ports.transport import PolicyTransport

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def bucket_iam_path(bucket: str) -> str:
    return f"b/{quote(bucket, safe='')}/iam"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = ErrorResponse.model_validate_json(response.content)
    except ValidationError:
        return response.reason_phrase
    return payload.error.message or response.reason_phrase


@dataclass(slots=True)
class GcsPolicyTransport:
    """``PolicyTransport`` backed by ``GET``/``PUT`` on ``b/{bucket}/iam``.

    The resource id is the bucket name. One HTTP client, and with it one rate
    limiter, is shared by every call until :meth:`aclose`; use the transport
    as an async context manager to bound that lifetime to one event loop.
    """

    config: GcsConfig = field(default_factory=get_gcs_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def __aenter__(self) -> GcsPolicyTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is None:
            return
        client, self._client = self._client, None
        await client.aclose()

    def _shared_client(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        return self._client

    async def get_policy(self, resource_id: str, *, requested_version: int) -> PolicyDocument:
        params = self._params(optionsRequestedPolicyVersion=str(requested_version))
        response = await self._perform_request(
            method="GET",
            resource_id=resource_id,
            params=params,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            raise PolicyNotFoundError(resource_id)
        self._raise_for_status(response, resource_id=resource_id)
        return self._parse(response, resource_id=resource_id)

    async def set_policy(self, resource_id: str, document: PolicyDocument) -> PolicyDocument:
        response = await self._perform_request(
            method="PUT",
            resource_id=resource_id,
            params=self._params(),
            json=serialize_policy(document),
        )
        self._raise_for_status(response, resource_id=resource_id)
        return self._parse(response, resource_id=resource_id)

    async def _perform_request(
        self,
        *,
        method: str,
        resource_id: str,
        params: dict[str, str],
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.config.access_token}"}
        try:
            return await self._shared_client().request(
                method, bucket_iam_path(resource_id), params=params, headers=headers, json=json
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} policy of {resource_id!r} failed: {exc}") from exc

    def _params(self, **extra: str) -> dict[str, str]:
        params = dict(extra)
        if self.config.user_project:
            params["userProject"] = self.config.user_project
        return params

    @staticmethod
    def _raise_for_status(response: httpx.Response, *, resource_id: str) -> None:
        if response.is_success:
            return
        message = _error_message(response)
        log.error(f"Bucket IAM API error {response.status_code} for {resource_id}: {message}")
        raise TransportError(
            f"Bucket IAM API returned {response.status_code} for {resource_id!r}: {message}",
            status_code=response.status_code,
        )

    @staticmethod
    def _parse(response: httpx.Response, *, resource_id: str) -> PolicyDocument:
        try:
            return parse_policy(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError(f"Unexpected policy payload for {resource_id!r}") from exc


if TYPE_CHECKING:
    _transport_check: PolicyTransport = GcsPolicyTransport()
