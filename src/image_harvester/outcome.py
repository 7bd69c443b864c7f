"""
Outcome type for fallible discovery steps.

Every step of per-node extraction returns an ``Outcome`` instead of raising, so
the "drop the candidate and keep walking" policy is an explicit branch at each
call site.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FailureKind(str, Enum):
    """Why a candidate or sub-tree produced no record."""
    EMPTY = "empty"
    PRIVATE = "private"
    VECTOR = "vector"
    UNRESOLVABLE = "unresolvable"
    ACCESS_RESTRICTED = "access_restricted"
    FETCH_FAILED = "fetch_failed"
    MALFORMED = "malformed"
    SUBTREE_FAILED = "subtree_failed"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: Optional[T] = None
    failure: Optional[FailureKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, kind: FailureKind, detail: str = "") -> "Outcome[T]":
        return cls(failure=kind, detail=detail)
