# MovieSync test scripts
from __future__ import annotations

from ms_platform.orchestrator._chunking import (
    effective_chunk_size,
    fixed_batches,
    id_batches,
    join_ids,
    legacy_batches,
)


def test_legacy_batches_flush_on_index_multiple() -> None:
    sizes = [len(b) for b in legacy_batches(list(range(25)), 10)]
    assert sizes == [1, 10, 10, 4]


def test_legacy_batches_last_index_on_boundary() -> None:
    assert [len(b) for b in legacy_batches(list(range(11)), 10)] == [1, 10]
    assert [len(b) for b in legacy_batches([42], 10)] == [1]
    assert list(legacy_batches([], 10)) == []


def test_fixed_batches_clean_remainder() -> None:
    assert [len(b) for b in fixed_batches(list(range(25)), 10)] == [10, 10, 5]


def test_id_batches_mode_switch() -> None:
    ids = list(range(12))
    assert [len(b) for b in id_batches(ids, 10, "fixed")] == [10, 2]
    assert [len(b) for b in id_batches(ids, 10, "legacy")] == [1, 10, 1]
    assert [len(b) for b in id_batches(ids, 10, "")] == [1, 10, 1]


def test_join_ids() -> None:
    assert join_ids([1, 22, 333]) == "1,22,333"


def test_effective_chunk_size_phase_override() -> None:
    cfg = {"apply_chunk_size": 100, "apply_chunk_size_by_phase": {"DELETE": 5, "watchlist": 0}}
    assert effective_chunk_size(cfg, "delete") == 5
    assert effective_chunk_size(cfg, "watchlist") == 100
    assert effective_chunk_size(cfg, "collection") == 100
    assert effective_chunk_size(None, "delete") == 0
