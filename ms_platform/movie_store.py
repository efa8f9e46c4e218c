# ms_platform/movie_store.py
# JSON-file movie store: one document, atomic replace on every write.
from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from .orchestrator._types import (
    DELETE,
    INSERT,
    UPDATE,
    LocalMovie,
    MutationOp,
    StoreUnavailable,
)

_COLUMNS = ("title", "released_utc_ms", "watched", "poster", "in_collection", "in_watchlist")


class JsonMovieStore:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.RLock()
        self._rows: dict[int, dict[str, Any]] | None = None

    # IO
    def _read(self) -> dict[int, dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            doc = json.loads(self.path.read_text("utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise StoreUnavailable(f"cannot read {self.path}: {e}") from e
        movies = doc.get("movies") if isinstance(doc, dict) else None
        if not isinstance(movies, dict):
            return {}
        out: dict[int, dict[str, Any]] = {}
        for k, row in movies.items():
            try:
                out[int(k)] = LocalMovie.from_row({**row, "tmdb_id": int(k)}).to_row()
            except (KeyError, TypeError, ValueError):
                continue
        return out

    def _write_atomic(self, rows: Mapping[int, Mapping[str, Any]]) -> None:
        data = {"movies": {str(k): dict(v) for k, v in sorted(rows.items())}}
        tmp = self.path.with_suffix(self.path.suffix + f".{os.getpid()}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
            tmp.replace(self.path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise StoreUnavailable(f"cannot write {self.path}: {e}") from e

    def _load(self) -> dict[int, dict[str, Any]]:
        if self._rows is None:
            self._rows = self._read()
        return self._rows

    def _commit(self, rows: dict[int, dict[str, Any]]) -> None:
        self._write_atomic(rows)
        self._rows = rows

    # Reads
    def query_all_ids(self) -> Optional[set[int]]:
        with self._lock:
            return set(self._load().keys())

    def query_by_id(self, tmdb_id: int) -> Optional[LocalMovie]:
        with self._lock:
            row = self._load().get(int(tmdb_id))
            return LocalMovie.from_row(row) if row else None

    def all(self) -> list[LocalMovie]:
        with self._lock:
            return [LocalMovie.from_row(r) for _, r in sorted(self._load().items())]

    # Writes
    def insert(self, movie: LocalMovie) -> None:
        self.apply_batch([MutationOp.insert(movie)])

    def bulk_insert(self, movies: Sequence[LocalMovie]) -> int:
        return self.apply_batch([MutationOp.insert(m) for m in movies])

    def update(self, tmdb_id: int, fields: Mapping[str, Any]) -> None:
        self.apply_batch([MutationOp.update(tmdb_id, fields)])

    def delete(self, tmdb_id: int) -> None:
        self.apply_batch([MutationOp.delete(tmdb_id)])

    def apply_batch(self, ops: Sequence[MutationOp]) -> int:
        """All ops land in one write or none do. Returns the number of rows touched."""
        with self._lock:
            rows = {k: dict(v) for k, v in self._load().items()}
            touched = 0
            for op in ops:
                mid = int(op.tmdb_id)
                if op.kind == INSERT:
                    rows[mid] = LocalMovie.from_row({**op.values, "tmdb_id": mid}).to_row()
                    touched += 1
                elif op.kind == UPDATE:
                    row = rows.get(mid)
                    if row is None:
                        continue
                    for col, val in op.values.items():
                        if col in _COLUMNS:
                            row[col] = int(val) if col in ("watched", "in_collection", "in_watchlist", "released_utc_ms") else val
                    touched += 1
                elif op.kind == DELETE:
                    if rows.pop(mid, None) is not None:
                        touched += 1
                else:
                    raise StoreUnavailable(f"unknown op kind: {op.kind!r}")
            if ops:
                self._commit(rows)
            return touched
