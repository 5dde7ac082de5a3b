"""SQLAlchemy mapping metadata for binding declarations."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)

from policysync.domain.model import (
    BindingDeclaration,
    BindingIntent,
    Condition,
    ConditionReason,
    ConditionType,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class ConditionListType(TypeDecorator[list[Condition]]):
    """Store declaration conditions as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[Condition] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        payload = [
            {
                "type": condition.type.value,
                "status": condition.status,
                "reason": condition.reason.value,
                "message": condition.message,
                "last_transition_time": condition.last_transition_time.astimezone(UTC).isoformat(),
            }
            for condition in value
        ]
        return json.dumps(payload)

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[Condition]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[dict[str, Any]], loaded)
        return [
            Condition(
                type=ConditionType(item["type"]),
                status=bool(item["status"]),
                reason=ConditionReason(item["reason"]),
                message=item.get("message", ""),
                last_transition_time=datetime.fromisoformat(item["last_transition_time"]),
            )
            for item in items
        ]


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}

binding_declaration_table = Table(
    "binding_declaration",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("resource_id", String, nullable=False),
    Column("role", String, nullable=False),
    Column("member", String, nullable=False),
    Column("intent", Enum(BindingIntent, native_enum=False), nullable=False),
    Column("deletion_requested", Boolean, nullable=False, default=False),
    Column("conditions", ConditionListType, nullable=False),
    Column("failure_count", Integer, nullable=False, default=0),
    Column("not_converged_count", Integer, nullable=False, default=0),
    Column("last_error", Text, nullable=True),
    Column("next_attempt_at", UTCDateTime, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    UniqueConstraint("resource_id", "role", "member"),
    Index("ix_binding_declaration_next_attempt_at", "next_attempt_at"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the declaration model."""

    log.info("Starting SQLAlchemy mappers")
    mapper_registry.map_imperatively(BindingDeclaration, binding_declaration_table)
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
