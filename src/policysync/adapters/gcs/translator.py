"""Translate bucket IAM payloads to and from domain policy documents."""

from __future__ import annotations

from typing import Any

from policysync.domain.model import Binding, BindingCondition, PolicyDocument

from .schema import BindingPayload, ConditionPayload, PolicyPayload


def parse_policy(payload: object) -> PolicyDocument:
    """Validate a raw JSON payload and convert it into a ``PolicyDocument``."""

    return translate_policy(PolicyPayload.model_validate(payload))


def translate_policy(payload: PolicyPayload) -> PolicyDocument:
    return PolicyDocument(
        version=payload.version,
        bindings=[_translate_binding(binding) for binding in payload.bindings],
    )


def _translate_binding(payload: BindingPayload) -> Binding:
    condition = None
    if payload.condition is not None:
        condition = BindingCondition(
            expression=payload.condition.expression,
            title=payload.condition.title,
            description=payload.condition.description,
        )
    return Binding(role=payload.role, members=list(payload.members), condition=condition)


def serialize_policy(document: PolicyDocument) -> dict[str, Any]:
    """Build the full-replacement request body.

    The body never carries an ``etag``, so the API applies the write
    unconditionally instead of rejecting it on a concurrent change.
    """

    payload = PolicyPayload(
        version=document.version,
        bindings=[
            BindingPayload(
                role=binding.role,
                members=list(binding.members),
                condition=(
                    ConditionPayload(
                        expression=binding.condition.expression,
                        title=binding.condition.title,
                        description=binding.condition.description,
                    )
                    if binding.condition is not None
                    else None
                ),
            )
            for binding in document.bindings
        ],
    )
    return payload.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        exclude={"etag", "kind", "resource_id"},
    )
