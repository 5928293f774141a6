"""Bounded batching helpers used for bulk reads and writes."""

from __future__ import annotations

from itertools import islice
from logging import getLogger
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence
    from types import TracebackType

log = getLogger(__name__)


def partition[T](items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive lists of at most ``size`` items."""

    if size <= 0:
        raise ValueError("Partition size must be positive")
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk


class BatchWriter[T]:
    """Buffer entities and hand them to ``flush`` in batches of ``batch_size``.

    Used as a context manager, any remaining buffered items are flushed on a
    clean exit and dropped when the block raises.
    """

    def __init__(
        self,
        flush: Callable[[Sequence[T]], None],
        *,
        batch_size: int,
        name: str = "batch",
    ) -> None:
        if batch_size <= 0:
            raise ValueError("Batch size must be positive")
        self._flush = flush
        self._batch_size = batch_size
        self._name = name
        self._buffer: list[T] = []
        self.written = 0

    def __enter__(self) -> BatchWriter[T]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is None:
            self.flush()
        else:
            self._buffer.clear()
        return False

    def add(self, item: T) -> None:
        self._buffer.append(item)
        if len(self._buffer) >= self._batch_size:
            self.flush()

    def add_all(self, items: Iterable[T]) -> None:
        for item in items:
            self.add(item)

    def flush(self) -> None:
        if not self._buffer:
            return
        batch = self._buffer
        self._buffer = []
        log.debug("Flushing %s %s records", len(batch), self._name)
        self._flush(batch)
        self.written += len(batch)
