from __future__ import annotations

import pytest

from policysync.domain.errors import StructuralPolicyError
from policysync.domain.model import (
    Binding,
    BindingCondition,
    BindingIntent,
    DesiredBindingSpec,
    PolicyDocument,
)
from policysync.domain.policy_diff import (
    apply_spec,
    bind,
    is_empty,
    is_up_to_date,
    prune_empty_bindings,
    unbind,
    validate_document,
)
from tests.helpers.transport import as_mapping, make_document

ROLE = "roles/storage.objectViewer"
OTHER_ROLE = "roles/storage.admin"


def spec(member: str = "user:m@example.com", role: str = ROLE) -> DesiredBindingSpec:
    return DesiredBindingSpec(role=role, member=member)


def test_bind_on_empty_document_adds_single_binding() -> None:
    document = PolicyDocument()

    changed = bind(spec(), document)

    assert changed is True
    assert as_mapping(document) == {ROLE: ["user:m@example.com"]}
    assert document.version == 3


def test_bind_existing_member_is_noop() -> None:
    document = make_document({ROLE: ["user:m@example.com"]}, version=1)

    changed = bind(spec(), document)

    assert changed is False
    assert as_mapping(document) == {ROLE: ["user:m@example.com"]}
    assert document.version == 1


def test_bind_appends_member_at_tail() -> None:
    document = make_document({ROLE: ["user:x@example.com", "user:y@example.com"]})

    changed = bind(spec(), document)

    assert changed is True
    assert as_mapping(document) == {
        ROLE: ["user:x@example.com", "user:y@example.com", "user:m@example.com"]
    }


def test_bind_new_role_is_appended_after_existing_bindings() -> None:
    document = make_document({OTHER_ROLE: ["user:x@example.com"]})

    bind(spec(), document)

    assert [binding.role for binding in document.bindings] == [OTHER_ROLE, ROLE]


def test_unbind_leaves_empty_binding_in_place() -> None:
    document = make_document({ROLE: ["user:m@example.com"]})

    changed = unbind(spec(), document)

    assert changed is True
    assert as_mapping(document) == {ROLE: []}


def test_unbind_absent_member_is_noop() -> None:
    document = make_document({ROLE: ["user:x@example.com", "user:y@example.com"]})

    changed = unbind(spec("user:z@example.com"), document)

    assert changed is False
    assert as_mapping(document) == {ROLE: ["user:x@example.com", "user:y@example.com"]}


def test_unbind_on_empty_document_is_noop() -> None:
    document = PolicyDocument()

    assert unbind(spec(), document) is False
    assert document == PolicyDocument()


def test_unbind_member_holding_other_role_is_noop() -> None:
    document = make_document({OTHER_ROLE: ["user:m@example.com"]})

    assert unbind(spec(), document) is False
    assert as_mapping(document) == {OTHER_ROLE: ["user:m@example.com"]}


def test_unbind_keeps_order_of_remaining_members() -> None:
    document = make_document(
        {ROLE: ["user:a@example.com", "user:m@example.com", "user:b@example.com"]}
    )

    unbind(spec(), document)

    assert as_mapping(document) == {ROLE: ["user:a@example.com", "user:b@example.com"]}


def test_bind_is_idempotent() -> None:
    document = make_document({OTHER_ROLE: ["user:x@example.com"]}, version=1)

    assert bind(spec(), document) is True
    after_first = make_document(as_mapping(document), version=document.version)

    assert bind(spec(), document) is False
    assert document == after_first


def test_unbind_is_idempotent() -> None:
    document = make_document({ROLE: ["user:m@example.com", "user:x@example.com"]})

    assert unbind(spec(), document) is True
    assert unbind(spec(), document) is False


def test_unbind_after_bind_removes_member() -> None:
    document = make_document({OTHER_ROLE: ["user:x@example.com"]})

    bind(spec(), document)
    unbind(spec(), document)

    assert document.bindings_for(ROLE)[0].members == []
    assert as_mapping(document)[OTHER_ROLE] == ["user:x@example.com"]


def test_repeated_bind_never_duplicates_role() -> None:
    document = PolicyDocument()

    for index in range(5):
        bind(spec(f"user:{index}@example.com"), document)

    assert len(document.bindings_for(ROLE)) == 1
    assert len(document.bindings_for(ROLE)[0].members) == 5


def test_up_to_date_document_is_not_changed_by_bind() -> None:
    document = make_document({ROLE: ["user:m@example.com"]})

    assert is_up_to_date(spec(), document) is True
    assert bind(spec(), document) is False


def test_is_up_to_date_for_present_and_absent_intent() -> None:
    bound = make_document({ROLE: ["user:m@example.com"]})
    unbound = make_document({ROLE: ["user:x@example.com"]})
    absent = DesiredBindingSpec(role=ROLE, member="user:m@example.com", intent=BindingIntent.ABSENT)

    assert is_up_to_date(spec(), bound) is True
    assert is_up_to_date(spec(), unbound) is False
    assert is_up_to_date(absent, bound) is False
    assert is_up_to_date(absent, unbound) is True


def test_conditional_binding_counts_as_bound() -> None:
    document = PolicyDocument(
        version=3,
        bindings=[
            Binding(
                role=ROLE,
                members=["user:m@example.com"],
                condition=BindingCondition(expression="request.time < timestamp('2030-01-01')"),
            )
        ],
    )

    assert is_up_to_date(spec(), document) is True


def test_apply_spec_dispatches_on_intent() -> None:
    document = PolicyDocument()
    absent = DesiredBindingSpec(role=ROLE, member="user:m@example.com", intent=BindingIntent.ABSENT)

    assert apply_spec(spec(), document) is True
    assert apply_spec(absent, document) is True
    assert as_mapping(document) == {ROLE: []}


def test_is_empty_ignores_version() -> None:
    assert is_empty(PolicyDocument(version=3)) is True
    assert is_empty(make_document({ROLE: []})) is False


def test_prune_empty_bindings() -> None:
    document = make_document({ROLE: [], OTHER_ROLE: ["user:x@example.com"]})

    assert prune_empty_bindings(document) == 1
    assert as_mapping(document) == {OTHER_ROLE: ["user:x@example.com"]}
    assert prune_empty_bindings(document) == 0


@pytest.mark.parametrize(
    "document",
    [
        PolicyDocument(
            version=3,
            bindings=[
                Binding(role=ROLE, members=["user:a@example.com"]),
                Binding(role=ROLE, members=["user:b@example.com"]),
            ],
        ),
        PolicyDocument(
            version=3,
            bindings=[Binding(role=ROLE, members=["user:a@example.com", "user:a@example.com"])],
        ),
        PolicyDocument(
            version=1,
            bindings=[
                Binding(
                    role=ROLE,
                    members=["user:a@example.com"],
                    condition=BindingCondition(expression="true"),
                )
            ],
        ),
        PolicyDocument(version=4, bindings=[Binding(role=ROLE, members=["user:a@example.com"])]),
        PolicyDocument(version=3, bindings=[Binding(role="", members=["user:a@example.com"])]),
    ],
    ids=["duplicate-role", "duplicate-member", "condition-below-v3", "unknown-version", "no-role"],
)
def test_malformed_documents_raise_structural_error(document: PolicyDocument) -> None:
    with pytest.raises(StructuralPolicyError):
        validate_document(document)
    with pytest.raises(StructuralPolicyError):
        is_up_to_date(spec("user:a@example.com"), document)


def test_bind_refuses_to_pick_between_duplicate_roles() -> None:
    document = PolicyDocument(
        version=3,
        bindings=[Binding(role=ROLE, members=[]), Binding(role=ROLE, members=[])],
    )

    with pytest.raises(StructuralPolicyError):
        bind(spec(), document)


def test_desired_spec_rejects_blank_values() -> None:
    with pytest.raises(ValueError, match="role"):
        DesiredBindingSpec(role=" ", member="user:m@example.com")
    with pytest.raises(ValueError, match="member"):
        DesiredBindingSpec(role=ROLE, member="")
