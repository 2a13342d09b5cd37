"""Success-or-error values returned by every DAO, repository and service call.

Each public operation resolves to exactly one ``Ok`` or one ``Err``; callers
branch on ``result.ok`` (or ``isinstance``) instead of catching exceptions.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import SyncError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: SyncError

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return str(self.error)

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]
