# MovieSync test scripts
from __future__ import annotations

from pathlib import Path

import pytest

import moviesync
from ms_platform.orchestrator import LocalMovie, MovieRecord


@pytest.fixture()
def wired(monkeypatch: pytest.MonkeyPatch, config_base: Path, make_sync):
    built: list = []

    def fake_build(cfg):
        ms = make_sync()
        built.append(ms)
        return ms

    monkeypatch.setattr(moviesync, "build_sync", fake_build)
    return built


def test_sync_command_exit_codes(wired, remote) -> None:
    remote.watchlist = [MovieRecord(tmdb_id=1, title="One")]
    assert moviesync.main(["sync"]) == 0

    remote.fail = {"fetch_watchlist"}
    assert moviesync.main(["sync"]) == 2


def test_add_and_remove_commands(wired, remote, store) -> None:
    remote.catalog[5] = MovieRecord(tmdb_id=5, title="Five")
    assert moviesync.main(["add", "5", "--collection"]) == 0
    movie = store.query_by_id(5)
    assert movie is not None and movie.in_collection == 1

    assert moviesync.main(["remove", "5", "--collection"]) == 0
    assert store.query_by_id(5) is None
    assert moviesync.main(["remove", "5"]) == 1


def test_remove_watchlist_keeps_collected_row(wired, store) -> None:
    store.insert(LocalMovie(tmdb_id=8, in_watchlist=1, in_collection=1))
    assert moviesync.main(["remove", "8"]) == 0
    movie = store.query_by_id(8)
    assert movie is not None and (movie.in_watchlist, movie.in_collection) == (0, 1)
