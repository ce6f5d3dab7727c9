"""Typed contracts for GitHub client responses."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar


T = TypeVar("T")


class FetchState(str, Enum):
    """Normalized response state for downstream stages."""

    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(slots=True)
class FetchResult(Generic[T]):
    """Container that separates payload from fetch semantics."""

    state: FetchState
    data: Optional[T] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    rate_limited: bool = False

    @property
    def is_ok(self) -> bool:
        return self.state == FetchState.OK

    @property
    def is_empty(self) -> bool:
        return self.state == FetchState.EMPTY

    @property
    def is_failed(self) -> bool:
        return self.state == FetchState.FAILED


RepoPayload = dict[str, Any]
LanguagesPayload = dict[str, int]
CommitListPayload = list[dict[str, Any]]
CommitPayload = dict[str, Any]

RepoContract = FetchResult[RepoPayload]
LanguagesContract = FetchResult[LanguagesPayload]
CommitListContract = FetchResult[CommitListPayload]
CommitContract = FetchResult[CommitPayload]
