# /providers/trakt/_common.py

from __future__ import annotations
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from ms_platform.orchestrator._types import MovieRecord

# ── headers ───────────────────────────────────────────────────────────────────
UA = os.environ.get("MS_UA", "MovieSync/1.0 (Trakt)")

def build_headers(client_id: str, access_token: str | None = None) -> Dict[str, str]:
    h = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "trakt-api-version": "2",
        "trakt-api-key": str(client_id or "").strip(),
        "User-Agent": UA,
    }
    token = str(access_token or "").strip()
    if token:
        h["Authorization"] = f"Bearer {token}"
    return h

# ── rows → records ────────────────────────────────────────────────────────────
def parse_tmdb_id(val: object) -> Optional[int]:
    if isinstance(val, bool):
        return None
    if isinstance(val, int):
        return val if val > 0 else None
    if isinstance(val, str):
        try:
            n = int(val.strip())
        except ValueError:
            return None
        return n if n > 0 else None
    return None


def released_to_ms(val: Any) -> Optional[int]:
    if val is None or val == "":
        return None
    if isinstance(val, (int, float)) and not isinstance(val, bool):
        return int(val)
    s = str(val).strip()
    try:
        if len(s) == 10:
            dt = datetime.strptime(s, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        else:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * 1000)
    except ValueError:
        return None


def _poster_of(payload: Mapping[str, Any]) -> Any:
    images = payload.get("images")
    if not isinstance(images, Mapping):
        return None
    poster = images.get("poster")
    if isinstance(poster, Mapping):
        poster = poster.get("full") or poster.get("medium") or poster.get("thumb")
    if isinstance(poster, list):
        poster = poster[0] if poster else None
    if isinstance(poster, str) and poster and not poster.startswith("http"):
        poster = f"https://{poster}"
    return poster


def normalize_movie_row(row: Mapping[str, Any], **flags: Optional[bool]) -> Optional[MovieRecord]:
    """Watchlist/collection/search rows wrap the movie; summaries are the movie itself."""
    payload = row.get("movie") if isinstance(row.get("movie"), Mapping) else row
    ids = dict(payload.get("ids") or {})
    tmdb = parse_tmdb_id(ids.get("tmdb"))
    if tmdb is None:
        return None
    return MovieRecord(
        tmdb_id=tmdb,
        title=payload.get("title"),
        released_ms=released_to_ms(payload.get("released")),
        watched=flags.get("watched"),
        poster=_poster_of(payload),
        in_collection=flags.get("in_collection"),
        in_watchlist=flags.get("in_watchlist"),
    )


def build_movies_body(tmdb_ids: Iterable[int]) -> Dict[str, Any]:
    movies = [{"ids": {"tmdb": int(i)}} for i in tmdb_ids or []]
    return {"movies": movies} if movies else {}
