"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final, cast

from sqlalchemy import delete, func, select, update

from classipy.adapters.sqlalchemy.mappings import (
    classification_table,
    equivalent_concepts_table,
    relationship_change_table,
)
from classipy.domain.model import Classification, EquivalentConcepts, RelationshipChange

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Iterator

    from sqlalchemy import CursorResult, Table
    from sqlalchemy.orm import Session

    from classipy.domain.model import ClassificationStatus

MERGE_STREAM_CHUNK_SIZE: Final[int] = 1000


def _deleted_rows(session: Session, table: Table) -> int:
    result = cast("CursorResult[object]", session.execute(delete(table)))
    return result.rowcount


class SqlAlchemyClassificationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Classification) -> None:
        self.session.add(entity)

    def save(self, classification: Classification) -> Classification:
        return self.session.merge(classification)

    def get(self, classification_id: str) -> Classification | None:
        return self.session.get(Classification, classification_id)

    def find_by_path(self, path: str, *, limit: int) -> list[Classification]:
        stmt = (
            select(Classification)
            .where(classification_table.c.path == path)
            .order_by(classification_table.c.creation_date, classification_table.c.id)
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

    def find_by_statuses(self, statuses: Collection[ClassificationStatus]) -> list[Classification]:
        if not statuses:
            return []
        stmt = (
            select(Classification)
            .where(classification_table.c.status.in_(list(statuses)))
            .order_by(classification_table.c.creation_date)
        )
        return list(self.session.scalars(stmt))

    def compare_and_set_status(
        self,
        classification_id: str,
        expected: ClassificationStatus,
        new: ClassificationStatus,
    ) -> bool:
        stmt = (
            update(classification_table)
            .where(classification_table.c.id == classification_id)
            .where(classification_table.c.status == expected)
            .values(status=new)
        )
        result = cast("CursorResult[object]", self.session.execute(stmt))
        return result.rowcount == 1

    def delete_all(self) -> int:
        return _deleted_rows(self.session, classification_table)


class SqlAlchemyRelationshipChangeRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add_all(self, results: Iterable[RelationshipChange]) -> None:
        self.session.add_all(results)

    def count(self, classification_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(relationship_change_table)
            .where(relationship_change_table.c.classification_id == classification_id)
        )
        return self.session.execute(stmt).scalar_one()

    def find_page(
        self, classification_id: str, *, offset: int, limit: int
    ) -> tuple[list[RelationshipChange], int]:
        stmt = (
            select(RelationshipChange)
            .where(relationship_change_table.c.classification_id == classification_id)
            .order_by(relationship_change_table.c.sort_number)
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.scalars(stmt)), self.count(classification_id)

    def find_by_source(self, classification_id: str, source_id: str) -> list[RelationshipChange]:
        stmt = (
            select(RelationshipChange)
            .where(relationship_change_table.c.classification_id == classification_id)
            .where(relationship_change_table.c.source_id == source_id)
            .order_by(
                relationship_change_table.c.group,
                relationship_change_table.c.sort_number,
            )
        )
        return list(self.session.scalars(stmt))

    def stream_for_merge(self, classification_id: str) -> Iterator[RelationshipChange]:
        stmt = (
            select(RelationshipChange)
            .where(relationship_change_table.c.classification_id == classification_id)
            .order_by(
                relationship_change_table.c.source_id,
                relationship_change_table.c.group,
                relationship_change_table.c.sort_number,
            )
            .execution_options(yield_per=MERGE_STREAM_CHUNK_SIZE)
        )
        yield from self.session.scalars(stmt)

    def delete_all(self) -> int:
        return _deleted_rows(self.session, relationship_change_table)


class SqlAlchemyEquivalentConceptsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add_all(self, results: Iterable[EquivalentConcepts]) -> None:
        self.session.add_all(results)

    def count(self, classification_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(equivalent_concepts_table)
            .where(equivalent_concepts_table.c.classification_id == classification_id)
        )
        return self.session.execute(stmt).scalar_one()

    def find_page(
        self, classification_id: str, *, offset: int, limit: int
    ) -> tuple[list[EquivalentConcepts], int]:
        stmt = (
            select(EquivalentConcepts)
            .where(equivalent_concepts_table.c.classification_id == classification_id)
            .order_by(equivalent_concepts_table.c.id)
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.scalars(stmt)), self.count(classification_id)

    def delete_all(self) -> int:
        return _deleted_rows(self.session, equivalent_concepts_table)


if TYPE_CHECKING:
    from classipy.domain.ports.persistence import (
        ClassificationRepository,
        EquivalentConceptsRepository,
        RelationshipChangeRepository,
    )

    def _check(session: Session) -> None:
        _classifications: ClassificationRepository = SqlAlchemyClassificationRepository(session)
        _changes: RelationshipChangeRepository = SqlAlchemyRelationshipChangeRepository(session)
        _sets: EquivalentConceptsRepository = SqlAlchemyEquivalentConceptsRepository(session)
