from __future__ import annotations

from dataclasses import dataclass

import pytest

from classipy.domain.paging import (
    Page,
    PageRequest,
    SearchAfterPageRequest,
    SortKey,
    list_to_page,
    sub_list,
)


@dataclass(frozen=True)
class Row:
    name: str
    rank: int


ROWS = [Row(name, rank) for rank, name in enumerate("abcdefg")]


def by_rank(row: Row) -> SortKey:
    return (row.rank, row.name)


def test_sub_list_slices_by_page() -> None:
    assert sub_list(ROWS, 1, 3) == ROWS[3:6]
    assert sub_list(ROWS, 2, 3) == ROWS[6:]
    assert sub_list(ROWS, 5, 3) == []


def test_page_request_pages() -> None:
    page = list_to_page(ROWS, PageRequest(page=1, size=2))

    assert page.items == ROWS[2:4]
    assert page.total == len(ROWS)
    assert page.offset == 2


def test_page_request_validation() -> None:
    with pytest.raises(ValueError, match="negative"):
        PageRequest(page=-1)
    with pytest.raises(ValueError, match="positive"):
        PageRequest(size=0)


def test_search_after_walks_the_whole_list() -> None:
    request = SearchAfterPageRequest(size=3, sort_key=by_rank)
    seen: list[Row] = []

    page = list_to_page(ROWS, request)
    while page.items:
        seen.extend(page.items)
        request = request.next_request(page)
        page = list_to_page(ROWS, request)

    assert seen == ROWS


def test_search_after_resumes_strictly_after_token() -> None:
    request = SearchAfterPageRequest(size=2, sort_key=by_rank, search_after=(2, "c"))

    page = list_to_page(ROWS, request)

    assert [row.name for row in page.items] == ["d", "e"]
    assert page.search_after == (4, "e")
    assert page.offset is None
    assert page.total == len(ROWS)


def test_search_after_unknown_token_gives_empty_page() -> None:
    request = SearchAfterPageRequest(size=2, sort_key=by_rank, search_after=(99, "z"))

    page = list_to_page(ROWS, request)

    assert page.items == []
    assert page.total == 0


def test_page_map_keeps_paging_metadata() -> None:
    page = Page(items=ROWS[:2], total=7, offset=0)

    mapped = page.map(lambda row: row.name)

    assert mapped.items == ["a", "b"]
    assert mapped.total == 7
    assert len(mapped) == 2
