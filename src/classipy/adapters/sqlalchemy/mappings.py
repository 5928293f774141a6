"""SQLAlchemy mapping metadata for classification jobs and their results."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from functools import cache
from typing import Any, cast

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
    orm,
)
from sqlalchemy.orm import configure_mappers

from classipy.domain.model import (
    ChangeNature,
    Classification,
    ClassificationStatus,
    EquivalentConcepts,
    RelationshipChange,
)

log = logging.getLogger(__name__)

CONCEPT_ID_LENGTH = 18


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


class ConceptIdSetType(TypeDecorator[set[str]]):
    """A set of concept ids stored as a sorted JSON list."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: set[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(sorted(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> set[str]:
        _ = dialect
        if value is None:
            return set()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return set()
        items = cast(list[Any], loaded)
        return {item for item in items if isinstance(item, str)}


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

classification_table = Table(
    "classification",
    mapper_registry.metadata,
    Column("id", String(64), primary_key=True),
    Column("path", String, nullable=False, index=True),
    Column("reasoner_id", String, nullable=False),
    Column("user_id", String, nullable=True),
    Column(
        "status",
        Enum(ClassificationStatus, native_enum=False, length=32),
        nullable=False,
        index=True,
    ),
    Column("creation_date", UTCDateTime(), nullable=False),
    Column("last_commit_date", UTCDateTime(), nullable=False),
    Column("completion_date", UTCDateTime(), nullable=True),
    Column("save_date", UTCDateTime(), nullable=True),
    Column("error_message", Text, nullable=True),
    Column("inferred_relationship_changes_found", Boolean, nullable=True),
    Column("equivalent_concepts_found", Boolean, nullable=True),
)

relationship_change_table = Table(
    "classification_relationship_change",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("classification_id", String(64), nullable=False),
    Column("sort_number", Integer, nullable=False),
    Column("relationship_id", String(CONCEPT_ID_LENGTH), nullable=False, default=""),
    Column("active", Boolean, nullable=False),
    Column("source_id", String(CONCEPT_ID_LENGTH), nullable=False),
    Column("destination_id", String(CONCEPT_ID_LENGTH), nullable=False),
    Column("relationship_group", Integer, key="group", nullable=False),
    Column("type_id", String(CONCEPT_ID_LENGTH), nullable=False),
    Column("characteristic_type_id", String(CONCEPT_ID_LENGTH), nullable=False),
    Column("modifier_id", String(CONCEPT_ID_LENGTH), nullable=False),
    Column(
        "change_nature",
        Enum(ChangeNature, native_enum=False, length=16),
        nullable=False,
    ),
    Column("inferred_not_stated", Boolean, nullable=False, default=False),
)

Index(
    "ix_classification_relationship_change_merge_order",
    relationship_change_table.c.classification_id,
    relationship_change_table.c.source_id,
    relationship_change_table.c.group,
    relationship_change_table.c.sort_number,
)

equivalent_concepts_table = Table(
    "classification_equivalent_concepts",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("classification_id", String(64), nullable=False, index=True),
    Column("concept_ids", ConceptIdSetType(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the classification model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Classification, classification_table)
    mapper_registry.map_imperatively(RelationshipChange, relationship_change_table)
    mapper_registry.map_imperatively(EquivalentConcepts, equivalent_concepts_table)

    configure_mappers()
    return mapper_registry

