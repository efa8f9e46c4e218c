# ms_platform/orchestrator/_index.py
# membership sets for one sync run.
from __future__ import annotations

from typing import Iterable

from ._types import LocalStore, PassPlan, StoreUnavailable


class MembershipIndex:
    """
    Tracks local ids for a run: `local_ids` is the frozen snapshot, `pending_remove`
    only shrinks as remote ids are matched, `pending_add` only grows (first seen wins
    the ordering, duplicates collapse).
    """

    def __init__(self, local_ids: Iterable[int]):
        self.local_ids: frozenset[int] = frozenset(int(x) for x in local_ids)
        self._remove: set[int] = set(self.local_ids)
        self._add: dict[int, None] = {}

    @classmethod
    def from_store(cls, store: LocalStore) -> "MembershipIndex":
        try:
            ids = store.query_all_ids()
        except StoreUnavailable:
            raise
        except Exception as e:
            raise StoreUnavailable(f"local id enumeration failed: {e}") from e
        if ids is None:
            raise StoreUnavailable("local id enumeration returned nothing")
        return cls(ids)

    def remove(self, tmdb_id: int) -> None:
        self._remove.discard(int(tmdb_id))

    def add(self, tmdb_id: int) -> None:
        self._add.setdefault(int(tmdb_id), None)

    def absorb(self, plan: PassPlan) -> None:
        for i in plan.matched:
            self.remove(i)
        for i in plan.unmatched:
            self.add(i)

    def __contains__(self, tmdb_id: object) -> bool:
        return tmdb_id in self.local_ids

    @property
    def pending_remove(self) -> frozenset[int]:
        return frozenset(self._remove)

    @property
    def pending_add(self) -> list[int]:
        return list(self._add)
