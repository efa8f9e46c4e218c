# MovieSync test scripts
from __future__ import annotations

import sys
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from ms_platform.movie_store import JsonMovieStore  # noqa: E402
from ms_platform.orchestrator import MovieRecord, MovieSync, TransientError  # noqa: E402


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    return tmp_path


@dataclass
class FakeRemote:
    watchlist: list[MovieRecord] = field(default_factory=list)
    collection: list[MovieRecord] = field(default_factory=list)
    catalog: dict[int, MovieRecord] = field(default_factory=dict)
    fail: set[str] = field(default_factory=set)
    fail_summaries_after: int | None = None
    calls: list[tuple[str, Any]] = field(default_factory=list)

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail:
            raise TransientError(f"{name} failed")

    def fetch_watchlist(self, user: str) -> list[MovieRecord]:
        self.calls.append(("fetch_watchlist", user))
        self._maybe_fail("fetch_watchlist")
        return list(self.watchlist)

    def fetch_collection(self, user: str, extended: str = "min") -> list[MovieRecord]:
        self.calls.append(("fetch_collection", user))
        self._maybe_fail("fetch_collection")
        return list(self.collection)

    def fetch_summaries(self, ids: str, extended: str = "full") -> list[MovieRecord]:
        self.calls.append(("fetch_summaries", ids))
        self._maybe_fail("fetch_summaries")
        done = sum(1 for c in self.calls if c[0] == "fetch_summaries")
        if self.fail_summaries_after is not None and done > self.fail_summaries_after:
            raise TransientError("summaries failed")
        wl = {m.tmdb_id for m in self.watchlist}
        col = {m.tmdb_id for m in self.collection}
        out = []
        for raw in ids.split(","):
            mid = int(raw)
            base = self.catalog.get(mid) or MovieRecord(tmdb_id=mid, title=f"Movie {mid}")
            out.append(MovieRecord(
                tmdb_id=mid,
                title=base.title,
                released_ms=base.released_ms,
                watched=base.watched,
                poster=base.poster,
                in_watchlist=mid in wl if base.in_watchlist is None else base.in_watchlist,
                in_collection=mid in col if base.in_collection is None else base.in_collection,
            ))
        return out

    def fetch_summary(self, tmdb_id: int) -> MovieRecord:
        self.calls.append(("fetch_summary", tmdb_id))
        self._maybe_fail("fetch_summary")
        rec = self.catalog.get(tmdb_id)
        if rec is None:
            raise TransientError(f"unknown tmdb:{tmdb_id}")
        return rec

    def _write(self, name: str, tmdb_id: int) -> dict[str, Any]:
        self.calls.append((name, tmdb_id))
        self._maybe_fail(name)
        return {"ok": True}

    def add_to_watchlist(self, tmdb_id: int) -> dict[str, Any]:
        return self._write("add_to_watchlist", tmdb_id)

    def remove_from_watchlist(self, tmdb_id: int) -> dict[str, Any]:
        return self._write("remove_from_watchlist", tmdb_id)

    def add_to_collection(self, tmdb_id: int) -> dict[str, Any]:
        return self._write("add_to_collection", tmdb_id)

    def remove_from_collection(self, tmdb_id: int) -> dict[str, Any]:
        return self._write("remove_from_collection", tmdb_id)

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


@dataclass
class FakeCreds:
    signed_in: bool = True
    user: str = "me"

    def has_credentials(self) -> bool:
        return self.signed_in

    def username(self) -> str:
        return self.user


class InlineExecutor:
    """Runs submitted work immediately so fire-and-forget calls are observable."""

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        fut: Future = Future()
        try:
            fut.set_result(fn(*args, **kwargs))
        except Exception as e:
            fut.set_exception(e)
        return fut

    def shutdown(self, wait: bool = True) -> None:
        pass


@pytest.fixture()
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture()
def creds() -> FakeCreds:
    return FakeCreds()


@pytest.fixture()
def store(tmp_path: Path) -> JsonMovieStore:
    return JsonMovieStore(tmp_path / "movies.json")


@pytest.fixture()
def online() -> dict[str, Any]:
    # flip state["up"] (or give a list of answers in state["answers"]) from a test
    return {"up": True, "answers": None}


@pytest.fixture()
def make_sync(store: JsonMovieStore, remote: FakeRemote, creds: FakeCreds, online: dict[str, Any]):
    def _is_connected() -> bool:
        answers = online.get("answers")
        if answers:
            return bool(answers.pop(0))
        return bool(online["up"])

    def _make(**kw: Any) -> MovieSync:
        kw.setdefault("credentials", creds)
        kw.setdefault("is_connected", _is_connected)
        kw.setdefault("executor", InlineExecutor())
        kw.setdefault("lock", threading.Lock())
        return MovieSync(kw.pop("store", store), kw.pop("remote", remote), **kw)

    return _make
