"""Decode the reasoner's result archive into classification result records.

The archive is a zip of RF2 files. Two entries matter: the relationship delta
(one row per changed relationship) and the equivalent concept map delta (one
row per concept, grouped into sets by the map target). Everything else in the
archive is ignored. Entries are read lazily, line by line.
"""

from __future__ import annotations

import io
import zipfile
from enum import IntEnum, StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from classipy.domain.model import (
    INFERRED_RELATIONSHIP,
    EquivalentConcepts,
    RelationshipChange,
    change_nature_for,
)

from .errors import ResultIngestionError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from typing import BinaryIO

log = getLogger(__name__)


class ResultEntryKind(StrEnum):
    RELATIONSHIP_DELTA = "sct2_Relationship_Delta"
    EQUIVALENT_CONCEPTS = "der2_sRefset_EquivalentConceptSimpleMapDelta"


class RelationshipColumn(IntEnum):
    ID = 0
    EFFECTIVE_TIME = 1
    ACTIVE = 2
    MODULE_ID = 3
    SOURCE_ID = 4
    DESTINATION_ID = 5
    RELATIONSHIP_GROUP = 6
    TYPE_ID = 7
    CHARACTERISTIC_TYPE_ID = 8
    MODIFIER_ID = 9


class EquivalentConceptsColumn(IntEnum):
    ID = 0
    EFFECTIVE_TIME = 1
    ACTIVE = 2
    MODULE_ID = 3
    REFSET_ID = 4
    REFERENCED_COMPONENT_ID = 5
    MAP_TARGET = 6


def classify_entry(name: str) -> ResultEntryKind | None:
    for kind in ResultEntryKind:
        if kind.value in name:
            return kind
    return None


def iter_result_entries(stream: BinaryIO) -> Iterator[tuple[ResultEntryKind, Iterator[str]]]:
    """Yield ``(kind, lines)`` for each recognised entry of the archive.

    ``lines`` must be consumed before advancing to the next entry. The header
    row of each entry is included.
    """

    try:
        with zipfile.ZipFile(stream) as archive:
            for info in archive.infolist():
                kind = classify_entry(info.filename)
                if kind is None:
                    log.debug("Skipping result archive entry %s", info.filename)
                    continue
                with (
                    archive.open(info) as raw,
                    io.TextIOWrapper(raw, encoding="utf-8", newline="") as text,
                ):
                    yield kind, _strip_newlines(text)
    except (zipfile.BadZipFile, UnicodeDecodeError) as exc:
        raise ResultIngestionError(f"Unreadable result archive: {exc}") from exc


def _strip_newlines(lines: Iterable[str]) -> Iterator[str]:
    try:
        for line in lines:
            yield line.rstrip("\r\n")
    except (zipfile.BadZipFile, UnicodeDecodeError) as exc:
        raise ResultIngestionError(f"Corrupt result archive entry: {exc}") from exc


class ResultArchiveParser:
    """Turn RF2 rows into result records for one classification.

    The parser keeps a running sort number so every relationship change it
    produces gets a unique, strictly increasing ordinal.
    """

    def __init__(self, classification_id: str) -> None:
        self.classification_id = classification_id
        self._next_sort_number = 0

    def parse_relationship_changes(self, lines: Iterable[str]) -> Iterator[RelationshipChange]:
        for line_number, values in _rows(lines, len(RelationshipColumn)):
            try:
                group = int(values[RelationshipColumn.RELATIONSHIP_GROUP])
            except ValueError as exc:
                raise ResultIngestionError(
                    f"Relationship delta line {line_number}: invalid relationship group"
                ) from exc
            active = values[RelationshipColumn.ACTIVE] == "1"
            change = RelationshipChange(
                classification_id=self.classification_id,
                sort_number=self._next_sort_number,
                relationship_id=values[RelationshipColumn.ID],
                active=active,
                source_id=values[RelationshipColumn.SOURCE_ID],
                destination_id=values[RelationshipColumn.DESTINATION_ID],
                group=group,
                type_id=values[RelationshipColumn.TYPE_ID],
                characteristic_type_id=INFERRED_RELATIONSHIP,
                modifier_id=values[RelationshipColumn.MODIFIER_ID],
                change_nature=change_nature_for(active),
            )
            self._next_sort_number += 1
            yield change

    def parse_equivalent_concepts(self, lines: Iterable[str]) -> list[EquivalentConcepts]:
        sets: dict[str, EquivalentConcepts] = {}
        for _, values in _rows(lines, len(EquivalentConceptsColumn)):
            set_id = values[EquivalentConceptsColumn.MAP_TARGET]
            equivalent = sets.get(set_id)
            if equivalent is None:
                equivalent = EquivalentConcepts(classification_id=self.classification_id)
                sets[set_id] = equivalent
            equivalent.add_concept_id(values[EquivalentConceptsColumn.REFERENCED_COMPONENT_ID])

        result: list[EquivalentConcepts] = []
        for set_id, equivalent in sets.items():
            if len(equivalent.concept_ids) < 2:
                log.warning(
                    "Ignoring equivalent concept set %s with a single member %s",
                    set_id,
                    sorted(equivalent.concept_ids),
                )
                continue
            result.append(equivalent)
        return result


def _rows(lines: Iterable[str], width: int) -> Iterator[tuple[int, list[str]]]:
    iterator = iter(lines)
    next(iterator, None)  # header
    for line_number, line in enumerate(iterator, start=2):
        if not line.strip():
            continue
        values = line.split("\t")
        if len(values) < width:
            raise ResultIngestionError(
                f"Line {line_number}: expected {width} columns, found {len(values)}"
            )
        yield line_number, values
