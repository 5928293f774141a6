"""Ports onto the branch / commit store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime
    from types import TracebackType

    from classipy.domain.model import CallerIdentity


class BranchNotFoundError(LookupError):
    """Raised when a branch path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Branch {path} does not exist")
        self.path = path


@runtime_checkable
class BranchTransaction(Protocol):
    """One open commit on a branch.

    Leaving the context without calling :meth:`commit` aborts the commit and
    discards every write made through it.
    """

    @property
    def path(self) -> str: ...

    def __enter__(self) -> BranchTransaction: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...


@runtime_checkable
class BranchStore(Protocol):
    def open_transaction(
        self, path: str, lock_reason: str, identity: CallerIdentity
    ) -> BranchTransaction: ...

    def get_branch_head(self, path: str) -> datetime: ...

    def get_branch_metadata(self, path: str, *, inherited: bool = True) -> Mapping[str, str]: ...


__all__ = ["BranchNotFoundError", "BranchStore", "BranchTransaction"]
