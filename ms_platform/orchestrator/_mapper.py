# ms_platform/orchestrator/_mapper.py
# remote movie record -> local row projection.
from __future__ import annotations

from typing import Any, Optional

from ._types import AddTo, LocalMovie, MovieRecord


def to_bool_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (int, float)):
        return 1 if value else 0
    s = str(value).strip().lower()
    return 1 if s in ("1", "true", "yes", "on") else 0


def _poster(value: Any) -> str:
    # Trakt image blocks come as a string or a list of urls.
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return _poster(value[0]) if value else ""
    if isinstance(value, dict):
        return _poster(value.get("poster") or value.get("full") or value.get("thumb"))
    return str(value)


def _released(value: Any) -> int:
    try:
        return int(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def project(record: MovieRecord) -> dict[str, Any]:
    """Basic properties, without in_watchlist and in_collection."""
    return {
        "tmdb_id": int(record.tmdb_id),
        "title": record.title or "",
        "released_utc_ms": _released(record.released_ms),
        "watched": to_bool_int(record.watched),
        "poster": _poster(record.poster),
    }


def project_full(record: MovieRecord, add_to: Optional[AddTo] = None) -> LocalMovie:
    """Full local row. An explicit add_to forces that flag on; otherwise flags come from the record."""
    base = project(record)
    in_collection = 1 if add_to is AddTo.COLLECTION else to_bool_int(record.in_collection)
    in_watchlist = 1 if add_to is AddTo.WATCHLIST else to_bool_int(record.in_watchlist)
    return LocalMovie(in_collection=in_collection, in_watchlist=in_watchlist, **base)
