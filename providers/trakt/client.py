# /providers/trakt/client.py
# Trakt remote service for movie watchlist/collection sync.
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Iterable, Mapping, Optional
from urllib.parse import quote

import requests

from ms_platform.config_base import cfg_int
from ms_platform.orchestrator._types import MovieRecord, TransientError

from .._log import log as _plog
from .._mod_common import build_session, parse_rate_limit, request_with_retries, safe_json
from ._auth import TraktCredentials
from ._common import build_headers, build_movies_body, normalize_movie_row, parse_tmdb_id

BASE = "https://api.trakt.tv"
URL_USER_WATCHLIST = BASE + "/users/{user}/watchlist/movies"
URL_USER_COLLECTION = BASE + "/users/{user}/collection/movies"
URL_SEARCH_TMDB = BASE + "/search/tmdb/{id}"
URL_WATCHLIST_ADD = f"{BASE}/sync/watchlist"
URL_WATCHLIST_REMOVE = f"{BASE}/sync/watchlist/remove"
URL_COLLECTION_ADD = f"{BASE}/sync/collection"
URL_COLLECTION_REMOVE = f"{BASE}/sync/collection/remove"


def _log(level: str, msg: str, **fields: Any) -> None:
    _plog("TRAKT", "movies", level, msg, **fields)


def _extended(level: str | None) -> str | None:
    lv = str(level or "").strip().lower()
    if not lv or lv == "min":
        return None
    if lv == "full":
        return "full,images"
    return lv


class TraktClient:
    """
    Remote side of the reconciliation. Every failure surfaces as TransientError;
    HTTP-level retries (429/5xx) happen inside request_with_retries.
    """

    def __init__(
        self,
        cfg: Mapping[str, Any],
        *,
        session: Optional[requests.Session] = None,
        emit: Callable[[str, Mapping[str, Any]], None] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        t = cfg.get("trakt") if isinstance(cfg.get("trakt"), Mapping) else {}
        self.creds = TraktCredentials(cfg)
        self.timeout = float(t.get("timeout") or 10)
        self.max_retries = cfg_int(t, "max_retries", 3)
        self.session = session or build_session("TRAKT", emit)
        self._sleep = sleep
        # memberships seen this run; summaries get annotated from them.
        # Guarded: writes update them from the executor thread.
        self._members_lock = threading.Lock()
        self._watchlist_ids: set[int] | None = None
        self._collection_ids: set[int] | None = None

    # HTTP
    def _headers(self) -> dict[str, str]:
        return build_headers(self.creds.client_id, self.creds.access_token)

    def _call(self, method: str, url: str, **kw: Any) -> Any:
        try:
            r = request_with_retries(
                self.session, method, url,
                headers=self._headers(),
                timeout=self.timeout,
                max_retries=self.max_retries,
                sleep=self._sleep,
                **kw,
            )
        except requests.RequestException as e:
            _log("warn", "request failed", method=method, url=url, error=str(e))
            raise TransientError(f"{method} {url}: {e}") from e
        rl = parse_rate_limit(r.headers or {})
        if rl.get("remaining") is not None:
            _log("debug", "rate", remaining=rl["remaining"], reset=rl.get("reset"))
        if not (200 <= r.status_code < 300):
            _log("warn", "bad status", method=method, url=url, status=r.status_code)
            raise TransientError(f"{method} {url}: http {r.status_code}")
        return safe_json(r)

    def _get_list(self, url: str, params: Mapping[str, Any] | None = None) -> list[Any]:
        data = self._call("GET", url, params=dict(params or {}))
        if not isinstance(data, list):
            raise TransientError(f"GET {url}: expected a list")
        return data

    def _records(self, rows: Iterable[Any], **flags: Optional[bool]) -> list[MovieRecord]:
        out: list[MovieRecord] = []
        skipped = 0
        for row in rows:
            rec = normalize_movie_row(row, **flags) if isinstance(row, Mapping) else None
            if rec is None:
                skipped += 1
                continue
            out.append(rec)
        if skipped:
            _log("info", "rows without tmdb id skipped", count=skipped)
        return out

    # Lists
    def fetch_watchlist(self, user: str) -> list[MovieRecord]:
        url = URL_USER_WATCHLIST.format(user=quote(str(user), safe=""))
        recs = self._records(self._get_list(url), in_watchlist=True)
        with self._members_lock:
            self._watchlist_ids = {r.tmdb_id for r in recs}
        _log("info", "watchlist fetched", count=len(recs))
        return recs

    def fetch_collection(self, user: str, extended: str = "min") -> list[MovieRecord]:
        url = URL_USER_COLLECTION.format(user=quote(str(user), safe=""))
        ext = _extended(extended)
        recs = self._records(self._get_list(url, {"extended": ext} if ext else None), in_collection=True)
        with self._members_lock:
            self._collection_ids = {r.tmdb_id for r in recs}
        _log("info", "collection fetched", count=len(recs))
        return recs

    # Summaries
    def _flags_for(self, tmdb_id: int) -> dict[str, Optional[bool]]:
        with self._members_lock:
            wl, col = self._watchlist_ids, self._collection_ids
            return {
                "in_watchlist": None if wl is None else tmdb_id in wl,
                "in_collection": None if col is None else tmdb_id in col,
            }

    def fetch_summaries(self, ids: str, extended: str = "full") -> list[MovieRecord]:
        out: list[MovieRecord] = []
        ext = _extended(extended)
        for raw in str(ids or "").split(","):
            mid = parse_tmdb_id(raw)
            if mid is None:
                continue
            params = {"type": "movie"}
            if ext:
                params["extended"] = ext
            rows = self._get_list(URL_SEARCH_TMDB.format(id=mid), params)
            for row in rows:
                if not isinstance(row, Mapping):
                    continue
                rec = normalize_movie_row(row, **self._flags_for(mid))
                if rec is not None and rec.tmdb_id == mid:
                    out.append(rec)
                    break
            else:
                _log("info", "no summary", tmdb=mid)
        return out

    def fetch_summary(self, tmdb_id: int) -> MovieRecord:
        recs = self.fetch_summaries(str(int(tmdb_id)))
        if not recs:
            raise TransientError(f"no trakt summary for tmdb:{tmdb_id}")
        return recs[0]

    # Writes
    def _post_movie(self, url: str, tmdb_id: int) -> dict[str, Any]:
        data = self._call("POST", url, json=build_movies_body([tmdb_id]))
        return data if isinstance(data, dict) else {}

    def _track(self, attr: str, tmdb_id: int, present: bool) -> None:
        with self._members_lock:
            ids = getattr(self, attr)
            if ids is None:
                return
            if present:
                ids.add(int(tmdb_id))
            else:
                ids.discard(int(tmdb_id))

    def add_to_watchlist(self, tmdb_id: int) -> dict[str, Any]:
        res = self._post_movie(URL_WATCHLIST_ADD, tmdb_id)
        self._track("_watchlist_ids", tmdb_id, True)
        return res

    def remove_from_watchlist(self, tmdb_id: int) -> dict[str, Any]:
        res = self._post_movie(URL_WATCHLIST_REMOVE, tmdb_id)
        self._track("_watchlist_ids", tmdb_id, False)
        return res

    def add_to_collection(self, tmdb_id: int) -> dict[str, Any]:
        res = self._post_movie(URL_COLLECTION_ADD, tmdb_id)
        self._track("_collection_ids", tmdb_id, True)
        return res

    def remove_from_collection(self, tmdb_id: int) -> dict[str, Any]:
        res = self._post_movie(URL_COLLECTION_REMOVE, tmdb_id)
        self._track("_collection_ids", tmdb_id, False)
        return res
