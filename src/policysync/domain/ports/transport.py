"""Port for reading and writing remote policy documents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from policysync.domain.model import PolicyDocument


@runtime_checkable
class PolicyTransport(Protocol):
    """Remote policy API.

    Both calls are coroutines, so cancelling the awaiting task aborts the
    in-flight request. Timeouts belong to the implementation.
    """

    async def get_policy(self, resource_id: str, *, requested_version: int) -> PolicyDocument:
        """Fetch the current policy.

        Raises ``PolicyNotFoundError`` when the resource has no policy and
        ``TransportError`` for any other failure.
        """
        ...

    async def set_policy(self, resource_id: str, document: PolicyDocument) -> PolicyDocument:
        """Replace the whole policy with ``document``; raises ``TransportError``."""
        ...


__all__ = ["PolicyTransport"]
