"""Observe/create/update/delete phases for one managed binding.

Each phase performs at most one remote write. Documents are always fetched
fresh and written back whole; there is no optimistic concurrency token, so
a concurrent writer between fetch and write loses its edit (last write wins).
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from policysync.domain.errors import (
    PolicyNotFoundError,
    ReconcileError,
    StructuralPolicyError,
    TransportError,
)
from policysync.domain.model.policy import REQUIRED_POLICY_VERSION, PolicyDocument
from policysync.domain.policy_diff import apply_spec, bind, is_empty, is_up_to_date

from .contracts import ExternalCreation, ExternalObservation, ExternalUpdate, ReconcilePhase

if TYPE_CHECKING:
    from policysync.domain.model.policy import DesiredBindingSpec
    from policysync.domain.ports.transport import PolicyTransport

log = getLogger(__name__)

ERR_CHECK_UP_TO_DATE = "cannot determine if policy is up to date"
ERR_GET_POLICY = "cannot get policy"
ERR_SET_POLICY = "cannot set policy"


@dataclass(slots=True)
class PolicyReconciler:
    """Drive one resource's policy toward a desired binding."""

    transport: PolicyTransport
    required_version: int = REQUIRED_POLICY_VERSION

    async def observe(self, resource_id: str, spec: DesiredBindingSpec) -> ExternalObservation:
        """Classify the remote policy without changing it.

        A missing or empty policy is reported as non-existent rather than as an
        error. Transport and structural failures are raised as ``ReconcileError``.
        """

        try:
            document = await self._fetch(resource_id)
        except PolicyNotFoundError:
            log.debug("No policy on %s", resource_id)
            return ExternalObservation()
        except TransportError as exc:
            raise ReconcileError(
                ERR_GET_POLICY, phase=ReconcilePhase.OBSERVE, resource_id=resource_id
            ) from exc

        if is_empty(document):
            return ExternalObservation()

        up_to_date = self._check_up_to_date(spec, document, resource_id, ReconcilePhase.OBSERVE)
        return ExternalObservation(resource_exists=True, resource_up_to_date=up_to_date)

    async def create(self, resource_id: str, spec: DesiredBindingSpec) -> ExternalCreation:
        """Write a fresh policy holding exactly the desired binding."""

        if not spec.should_be_bound:
            log.debug("Nothing to create on %s for absent %s", resource_id, spec.role)
            return ExternalCreation(written=False)

        document = PolicyDocument()
        bind(spec, document, required_version=self.required_version)
        await self._write(resource_id, document, ReconcilePhase.CREATE)
        log.info("Created policy on %s binding %s to %s", resource_id, spec.role, spec.member)
        return ExternalCreation()

    async def update(self, resource_id: str, spec: DesiredBindingSpec) -> ExternalUpdate:
        """Re-fetch, re-check and, if needed, write the converged policy back."""

        try:
            document = await self._fetch(resource_id)
        except (PolicyNotFoundError, TransportError) as exc:
            raise ReconcileError(
                ERR_GET_POLICY, phase=ReconcilePhase.UPDATE, resource_id=resource_id
            ) from exc

        if self._check_up_to_date(spec, document, resource_id, ReconcilePhase.UPDATE):
            log.debug("Policy on %s already converged", resource_id)
            return ExternalUpdate(changed=False)

        apply_spec(spec, document, required_version=self.required_version)
        await self._write(resource_id, document, ReconcilePhase.UPDATE)
        log.info(
            "Updated policy on %s (%s %s for %s)",
            resource_id,
            spec.intent,
            spec.role,
            spec.member,
        )
        return ExternalUpdate(changed=True)

    async def delete(self, resource_id: str, spec: DesiredBindingSpec) -> None:
        """Replace the remote policy with an empty one.

        This clears every binding on the resource, including bindings this
        reconciler does not manage.
        """

        await self._write(resource_id, PolicyDocument(), ReconcilePhase.DELETE)
        log.info("Cleared policy on %s (managed role %s)", resource_id, spec.role)

    async def _fetch(self, resource_id: str) -> PolicyDocument:
        return await self.transport.get_policy(
            resource_id, requested_version=self.required_version
        )

    async def _write(
        self,
        resource_id: str,
        document: PolicyDocument,
        phase: ReconcilePhase,
    ) -> None:
        try:
            await self.transport.set_policy(resource_id, document)
        except TransportError as exc:
            raise ReconcileError(ERR_SET_POLICY, phase=phase, resource_id=resource_id) from exc

    def _check_up_to_date(
        self,
        spec: DesiredBindingSpec,
        document: PolicyDocument,
        resource_id: str,
        phase: ReconcilePhase,
    ) -> bool:
        try:
            return is_up_to_date(spec, document, required_version=self.required_version)
        except StructuralPolicyError as exc:
            raise ReconcileError(
                ERR_CHECK_UP_TO_DATE, phase=phase, resource_id=resource_id
            ) from exc

