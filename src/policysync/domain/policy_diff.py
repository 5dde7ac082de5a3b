"""Pure diff engine over in-memory policy documents.

Every function here is deterministic and free of I/O. Mutating functions
edit the given document in place and report whether anything changed, so the
caller can skip the remote write when the document is already converged.

Binding order and member order are preserved: new bindings and new members
are appended at the tail, removals keep the relative order of the rest.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from policysync.domain.errors import StructuralPolicyError
from policysync.domain.model.enums import BindingIntent
from policysync.domain.model.policy import REQUIRED_POLICY_VERSION, Binding

if TYPE_CHECKING:
    from policysync.domain.model.policy import DesiredBindingSpec, PolicyDocument


def is_empty(document: PolicyDocument) -> bool:
    """Return whether the document holds no bindings, whatever its version."""

    return not document.bindings


def bind(
    spec: DesiredBindingSpec,
    document: PolicyDocument,
    *,
    required_version: int = REQUIRED_POLICY_VERSION,
) -> bool:
    """Grant ``spec.role`` to ``spec.member``; return whether the document changed."""

    binding = _binding_for(document, spec.role)
    if binding is None:
        document.bindings.append(Binding(role=spec.role, members=[spec.member]))
    elif binding.has_member(spec.member):
        return False
    else:
        binding.members.append(spec.member)
    document.version = required_version
    return True


def unbind(spec: DesiredBindingSpec, document: PolicyDocument) -> bool:
    """Revoke ``spec.role`` from ``spec.member``; return whether the document changed.

    The binding entry itself is kept even when its member list becomes empty.
    Use :func:`prune_empty_bindings` to drop such entries explicitly.
    """

    binding = _binding_for(document, spec.role)
    if binding is None or not binding.has_member(spec.member):
        return False
    binding.members.remove(spec.member)
    return True


def apply_spec(
    spec: DesiredBindingSpec,
    document: PolicyDocument,
    *,
    required_version: int = REQUIRED_POLICY_VERSION,
) -> bool:
    """Apply the mutation matching ``spec.intent``."""

    if spec.intent is BindingIntent.ABSENT:
        return unbind(spec, document)
    return bind(spec, document, required_version=required_version)


def is_up_to_date(
    spec: DesiredBindingSpec,
    document: PolicyDocument,
    *,
    required_version: int = REQUIRED_POLICY_VERSION,
) -> bool:
    """Return whether ``document`` already satisfies ``spec``.

    Raises:
        StructuralPolicyError: the document is malformed (duplicate roles,
            duplicate members, conditions below the required version, or an
            unknown version).
    """

    validate_document(document, required_version=required_version)
    binding = _binding_for(document, spec.role)
    bound = binding is not None and binding.has_member(spec.member)
    return bound if spec.should_be_bound else not bound


def validate_document(
    document: PolicyDocument,
    *,
    required_version: int = REQUIRED_POLICY_VERSION,
) -> None:
    """Raise :class:`StructuralPolicyError` if ``document`` is malformed."""

    if document.version < 0 or document.version > required_version:
        raise StructuralPolicyError(f"Unsupported policy version {document.version}")

    seen_roles: set[str] = set()
    for binding in document.bindings:
        if not binding.role:
            raise StructuralPolicyError("Policy contains a binding without a role")
        if binding.role in seen_roles:
            raise StructuralPolicyError(
                f"Policy contains duplicate bindings for role {binding.role!r}"
            )
        seen_roles.add(binding.role)

        if len(set(binding.members)) != len(binding.members):
            raise StructuralPolicyError(
                f"Binding for role {binding.role!r} lists a member twice"
            )

        if binding.condition is not None and document.version < required_version:
            raise StructuralPolicyError(
                f"Binding for role {binding.role!r} is conditional but policy version is "
                f"{document.version} (requires {required_version})"
            )


def prune_empty_bindings(document: PolicyDocument) -> int:
    """Drop bindings without members; return how many were removed."""

    kept = [binding for binding in document.bindings if binding.members]
    removed = len(document.bindings) - len(kept)
    if removed:
        document.bindings[:] = kept
    return removed


def _binding_for(document: PolicyDocument, role: str) -> Binding | None:
    matches = document.bindings_for(role)
    if len(matches) > 1:
        raise StructuralPolicyError(f"Policy contains duplicate bindings for role {role!r}")
    return matches[0] if matches else None
