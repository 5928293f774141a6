"""In-memory paging helpers.

Two request styles are supported: classic page numbers and "search after",
which resumes strictly after the item whose sort key equals the token. The
sort key is always an explicit callable supplied by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

type SortKey = tuple[object, ...]


@dataclass(slots=True, frozen=True)
class PageRequest:
    page: int = 0
    size: int = 100

    def __post_init__(self) -> None:
        if self.page < 0:
            raise ValueError("Page number must not be negative")
        if self.size <= 0:
            raise ValueError("Page size must be positive")

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass(slots=True, frozen=True)
class SearchAfterPageRequest[T]:
    size: int
    sort_key: Callable[[T], SortKey]
    search_after: SortKey | None = None

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError("Page size must be positive")

    def next_request(self, page: Page[T]) -> SearchAfterPageRequest[T]:
        return SearchAfterPageRequest(
            size=self.size, sort_key=self.sort_key, search_after=page.search_after
        )


@dataclass(slots=True)
class Page[T]:
    items: list[T]
    total: int
    offset: int | None = 0
    search_after: SortKey | None = None

    def __len__(self) -> int:
        return len(self.items)

    def map[U](self, func: Callable[[T], U]) -> Page[U]:
        return Page(
            items=[func(item) for item in self.items],
            total=self.total,
            offset=self.offset,
            search_after=self.search_after,
        )


def sub_list[T](items: Sequence[T], page_number: int, page_size: int) -> list[T]:
    offset = page_number * page_size
    if offset >= len(items):
        return []
    return list(items[offset : offset + page_size])


def list_to_page[T](
    items: Sequence[T],
    request: PageRequest | SearchAfterPageRequest[T],
) -> Page[T]:
    if isinstance(request, PageRequest):
        return Page(
            items=sub_list(items, request.page, request.size),
            total=len(items),
            offset=request.offset,
        )

    start = 0
    if request.search_after is not None:
        position = _find_position(items, request.sort_key, request.search_after)
        if position is None:
            return Page(items=[], total=0, offset=None)
        start = position + 1

    page_items = list(items[start : start + request.size])
    token = request.sort_key(page_items[-1]) if page_items else None
    return Page(items=page_items, total=len(items), offset=None, search_after=token)


def _find_position[T](
    items: Sequence[T], sort_key: Callable[[T], SortKey], token: SortKey
) -> int | None:
    for index, item in enumerate(items):
        if sort_key(item) == token:
            return index
    return None
