# ms_platform/orchestrator/_types.py
# types, errors and protocols for the reconciliation engine.
from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Optional, Protocol


# Errors

class MovieSyncError(RuntimeError): ...
class StoreUnavailable(MovieSyncError): ...
class TransientError(MovieSyncError): ...
class NotConnected(MovieSyncError): ...
class NoSession(MovieSyncError): ...


# Status

class SyncStatus(Enum):
    SUCCESS = "success"
    INCOMPLETE = "incomplete"


class AddTo(Enum):
    COLLECTION = "collection"
    WATCHLIST = "watchlist"


# Records

@dataclass(frozen=True)
class MovieRecord:
    tmdb_id: int
    title: Optional[str] = None
    released_ms: Optional[int] = None
    watched: Optional[bool] = None
    poster: Any = None
    in_collection: Optional[bool] = None
    in_watchlist: Optional[bool] = None


@dataclass
class LocalMovie:
    tmdb_id: int
    title: str = ""
    released_utc_ms: int = 0
    watched: int = 0
    poster: str = ""
    in_collection: int = 0
    in_watchlist: int = 0

    def to_row(self) -> dict[str, Any]:
        return {
            "tmdb_id": self.tmdb_id,
            "title": self.title,
            "released_utc_ms": self.released_utc_ms,
            "watched": self.watched,
            "poster": self.poster,
            "in_collection": self.in_collection,
            "in_watchlist": self.in_watchlist,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LocalMovie":
        return cls(
            tmdb_id=int(row["tmdb_id"]),
            title=str(row.get("title") or ""),
            released_utc_ms=int(row.get("released_utc_ms") or 0),
            watched=int(row.get("watched") or 0),
            poster=str(row.get("poster") or ""),
            in_collection=int(row.get("in_collection") or 0),
            in_watchlist=int(row.get("in_watchlist") or 0),
        )


UPDATE = "update"
DELETE = "delete"
INSERT = "insert"


@dataclass(frozen=True)
class MutationOp:
    kind: str
    tmdb_id: int
    values: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def update(cls, tmdb_id: int, values: Mapping[str, Any]) -> "MutationOp":
        return cls(UPDATE, tmdb_id, dict(values))

    @classmethod
    def delete(cls, tmdb_id: int) -> "MutationOp":
        return cls(DELETE, tmdb_id)

    @classmethod
    def insert(cls, movie: LocalMovie) -> "MutationOp":
        return cls(INSERT, movie.tmdb_id, movie.to_row())


# Collaborators

class LocalStore(Protocol):
    def query_all_ids(self) -> Optional[set[int]]: ...
    def query_by_id(self, tmdb_id: int) -> Optional[LocalMovie]: ...
    def insert(self, movie: LocalMovie) -> None: ...
    def bulk_insert(self, movies: Sequence[LocalMovie]) -> int: ...
    def update(self, tmdb_id: int, fields: Mapping[str, Any]) -> None: ...
    def delete(self, tmdb_id: int) -> None: ...
    def apply_batch(self, ops: Sequence[MutationOp]) -> int: ...


class RemoteService(Protocol):
    def fetch_watchlist(self, user: str) -> list[MovieRecord]: ...
    def fetch_collection(self, user: str, extended: str = "min") -> list[MovieRecord]: ...
    def fetch_summaries(self, ids: str, extended: str = "full") -> list[MovieRecord]: ...
    def fetch_summary(self, tmdb_id: int) -> MovieRecord: ...
    def add_to_watchlist(self, tmdb_id: int) -> Any: ...
    def remove_from_watchlist(self, tmdb_id: int) -> Any: ...
    def add_to_collection(self, tmdb_id: int) -> Any: ...
    def remove_from_collection(self, tmdb_id: int) -> Any: ...


class Credentials(Protocol):
    def has_credentials(self) -> bool: ...
    def username(self) -> str: ...


@dataclass(frozen=True)
class PassPlan:
    ops: tuple[MutationOp, ...] = ()
    matched: frozenset[int] = frozenset()
    unmatched: tuple[int, ...] = ()


@dataclass
class ApplyResult:
    ok: bool = True
    attempted: int = 0
    applied: int = 0
    chunks: int = 0
    failed_chunks: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class SyncReport:
    status: Optional[SyncStatus] = None
    stopped_at: Optional[str] = None
    updated: int = 0
    deleted: int = 0
    inserted: int = 0
    failed_chunks: int = 0
    started_at: float = 0.0
    finished_at: float = 0.0
    notes: list[str] = field(default_factory=list)

    @property
    def duration_ms(self) -> int:
        return max(0, int((self.finished_at - self.started_at) * 1000))


