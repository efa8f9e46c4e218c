# MovieSync test scripts
from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor

import pytest
import requests
import responses

from ms_platform.orchestrator import MovieRecord, TransientError
from providers.trakt import TraktClient, TraktCredentials
from providers.trakt._common import build_headers, normalize_movie_row, released_to_ms

CFG = {
    "trakt": {
        "client_id": "cid",
        "access_token": "tok",
        "username": "some user",
        "timeout": 5,
        "max_retries": 2,
    }
}


def _movie(tmdb: int | None, title: str = "T", **extra) -> dict:
    ids = {"trakt": 100 + (tmdb or 0), "imdb": "tt01", "tmdb": tmdb}
    return {"title": title, "year": 2001, "ids": ids, **extra}


def _client() -> TraktClient:
    return TraktClient(CFG, sleep=lambda _s: None)


def test_headers_carry_key_and_token() -> None:
    h = build_headers("cid", "tok")
    assert h["trakt-api-key"] == "cid"
    assert h["trakt-api-version"] == "2"
    assert h["Authorization"] == "Bearer tok"
    assert "Authorization" not in build_headers("cid")


def test_credentials_need_token_and_user() -> None:
    assert TraktCredentials(CFG).has_credentials() is True
    assert TraktCredentials({"trakt": {"access_token": "tok"}}).has_credentials() is False
    assert TraktCredentials({}).has_credentials() is False


def test_normalize_row_shapes() -> None:
    rec = normalize_movie_row(
        {"listed_at": "x", "movie": _movie(550, "Fight Club", released="1999-10-15",
                                           images={"poster": ["media.trakt.tv/p.jpg"]})},
        in_watchlist=True,
    )
    assert rec is not None
    assert rec == MovieRecord(tmdb_id=550, title="Fight Club", released_ms=939_945_600_000,
                              poster="https://media.trakt.tv/p.jpg", in_watchlist=True)
    assert normalize_movie_row({"movie": _movie(None)}) is None


def test_released_to_ms() -> None:
    assert released_to_ms("1970-01-02") == 86_400_000
    assert released_to_ms("1970-01-01T00:00:01.000Z") == 1000
    assert released_to_ms(None) is None
    assert released_to_ms("soon") is None


@responses.activate
def test_fetch_watchlist_and_collection() -> None:
    responses.add(responses.GET, "https://api.trakt.tv/users/some%20user/watchlist/movies",
                  json=[{"movie": _movie(1)}, {"movie": _movie(None)}, {"movie": _movie(2)}])
    responses.add(responses.GET, "https://api.trakt.tv/users/some%20user/collection/movies",
                  json=[{"movie": _movie(2)}])

    c = _client()
    wl = c.fetch_watchlist("some user")
    col = c.fetch_collection("some user", "min")

    assert [r.tmdb_id for r in wl] == [1, 2]
    assert all(r.in_watchlist for r in wl)
    assert [r.tmdb_id for r in col] == [2]
    sent = responses.calls[0].request.headers
    assert sent["trakt-api-key"] == "cid"
    assert "extended" not in (responses.calls[1].request.url or "")


@responses.activate
def test_fetch_summaries_annotates_memberships() -> None:
    responses.add(responses.GET, "https://api.trakt.tv/users/me/watchlist/movies",
                  json=[{"movie": _movie(1)}])
    responses.add(responses.GET, "https://api.trakt.tv/users/me/collection/movies", json=[])
    responses.add(responses.GET, "https://api.trakt.tv/search/tmdb/1",
                  json=[{"type": "movie", "movie": _movie(1, "One", released="2000-01-01")}])
    responses.add(responses.GET, "https://api.trakt.tv/search/tmdb/2", json=[])

    c = _client()
    c.fetch_watchlist("me")
    c.fetch_collection("me")
    recs = c.fetch_summaries("1,2", "full")

    assert [r.tmdb_id for r in recs] == [1]
    assert (recs[0].in_watchlist, recs[0].in_collection) == (True, False)
    assert "extended=full%2Cimages" in (responses.calls[2].request.url or "")


@responses.activate
def test_fetch_summary_missing_is_transient() -> None:
    responses.add(responses.GET, "https://api.trakt.tv/search/tmdb/9", json=[])
    with pytest.raises(TransientError):
        _client().fetch_summary(9)


@responses.activate
def test_http_errors_become_transient() -> None:
    responses.add(responses.GET, "https://api.trakt.tv/users/me/watchlist/movies", status=503)
    responses.add(responses.GET, "https://api.trakt.tv/users/me/collection/movies",
                  body=requests.ConnectionError("down"))

    c = _client()
    with pytest.raises(TransientError):
        c.fetch_watchlist("me")
    assert len(responses.calls) == 2  # one retry on 503
    with pytest.raises(TransientError):
        c.fetch_collection("me")


@responses.activate
def test_watchlist_add_posts_tmdb_body() -> None:
    responses.add(responses.POST, "https://api.trakt.tv/sync/watchlist",
                  json={"added": {"movies": 1}}, status=201)
    responses.add(responses.POST, "https://api.trakt.tv/sync/collection/remove", status=401)

    c = _client()
    assert c.add_to_watchlist(42) == {"added": {"movies": 1}}
    assert json.loads(responses.calls[0].request.body) == {"movies": [{"ids": {"tmdb": 42}}]}
    with pytest.raises(TransientError):
        c.remove_from_collection(42)


@responses.activate
def test_writes_on_worker_thread_feed_summary_flags() -> None:
    responses.add(responses.GET, "https://api.trakt.tv/users/me/watchlist/movies", json=[])
    responses.add(responses.GET, "https://api.trakt.tv/users/me/collection/movies",
                  json=[{"movie": _movie(i)} for i in range(1, 21)])
    responses.add(responses.POST, "https://api.trakt.tv/sync/watchlist", json={}, status=201)
    responses.add(responses.POST, "https://api.trakt.tv/sync/collection/remove", json={})
    responses.add(responses.GET, "https://api.trakt.tv/search/tmdb/7", json=[{"movie": _movie(7)}])

    c = _client()
    c.fetch_watchlist("me")
    c.fetch_collection("me")
    with ThreadPoolExecutor(max_workers=4) as pool:
        futs = [pool.submit(c.add_to_watchlist, i) for i in range(1, 21)]
        futs += [pool.submit(c.remove_from_collection, i) for i in range(1, 21)]
        for fut in futs:
            fut.result()

    rec = c.fetch_summary(7)
    assert (rec.in_watchlist, rec.in_collection) == (True, False)
    assert c.session.hits == 43
