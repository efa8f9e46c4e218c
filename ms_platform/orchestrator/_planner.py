from __future__ import annotations
from typing import Any, Iterable, List, Mapping

from ._types import MovieRecord, MutationOp, PassPlan

WATCHLIST_FLAGS: Mapping[str, Any] = {"in_watchlist": 1}
COLLECTION_FLAGS: Mapping[str, Any] = {"in_collection": 1}


def _valid_id(v: Any) -> int | None:
    if isinstance(v, bool):
        return None
    try:
        n = int(v)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


# One remote list against the local snapshot
def diff_pass(remote_movies: Iterable[MovieRecord], local_ids: Iterable[int] | frozenset[int],
              flag_values: Mapping[str, Any]) -> PassPlan:
    local = local_ids if isinstance(local_ids, (set, frozenset)) else frozenset(local_ids)
    ops: List[MutationOp] = []
    matched: set[int] = set()
    unmatched: dict[int, None] = {}
    for movie in remote_movies or ():
        mid = _valid_id(getattr(movie, "tmdb_id", None))
        if mid is None:
            continue
        if mid in local:
            # update existing movie, keeps it off the delete list
            if mid not in matched:
                ops.append(MutationOp.update(mid, flag_values))
                matched.add(mid)
        else:
            unmatched.setdefault(mid, None)
    return PassPlan(ops=tuple(ops), matched=frozenset(matched), unmatched=tuple(unmatched))


def skipped_count(remote_movies: Iterable[MovieRecord]) -> int:
    return sum(1 for m in remote_movies or () if _valid_id(getattr(m, "tmdb_id", None)) is None)


# Whatever is left was on neither remote list
def build_delete_ops(pending_remove: Iterable[int]) -> List[MutationOp]:
    return [MutationOp.delete(mid) for mid in sorted(pending_remove)]
