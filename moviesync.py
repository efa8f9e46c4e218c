# /moviesync.py
# MovieSync - command line entry: full sync or a single watchlist/collection change.
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, Optional, Sequence

from ms_platform._logging import log
from ms_platform.config_base import load_config, store_path
from ms_platform.connectivity import Connectivity
from ms_platform.movie_store import JsonMovieStore
from ms_platform.orchestrator import MovieSync, SyncStatus
from providers.trakt import TraktClient, TraktCredentials


def build_sync(cfg: Dict[str, Any]) -> MovieSync:
    return MovieSync(
        JsonMovieStore(store_path(cfg)),
        TraktClient(cfg),
        credentials=TraktCredentials(cfg),
        is_connected=Connectivity(cfg),
        cfg=cfg,
        on_progress=(lambda line: log.child("EVENT").debug(line)),
    )


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="moviesync", description="Sync local movies with Trakt.")
    sub = p.add_subparsers(dest="cmd", required=True)
    sub.add_parser("sync", help="reconcile local movies with the Trakt watchlist and collection")
    for name in ("add", "remove"):
        sp = sub.add_parser(name, help=f"{name} one movie (TMDb id)")
        sp.add_argument("tmdb_id", type=int)
        sp.add_argument("--collection", action="store_true", help="target the collection instead of the watchlist")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parser().parse_args(argv)
    cfg = load_config()
    log.set_level(str((cfg.get("runtime") or {}).get("log_level") or "info"))
    ms = build_sync(cfg)
    try:
        if args.cmd == "sync":
            return 0 if ms.sync() is SyncStatus.SUCCESS else 2
        target = "collection" if args.collection else "watchlist"
        fn = getattr(ms, f"{args.cmd}_{'to' if args.cmd == 'add' else 'from'}_{target}")
        changed = fn(args.tmdb_id)
        if not changed:
            log.warn(f"{args.cmd} {target} tmdb:{args.tmdb_id}: nothing changed locally")
        return 0 if changed else 1
    finally:
        ms.close()


if __name__ == "__main__":
    sys.exit(main())
