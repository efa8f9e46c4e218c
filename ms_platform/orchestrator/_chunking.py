from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Iterator, TypeVar

T = TypeVar("T")


def effective_chunk_size(store_cfg: Any, phase: str) -> int:
    cfg = store_cfg if isinstance(store_cfg, Mapping) else {}
    try:
        base = int(cfg.get("apply_chunk_size") or 0)
    except Exception:
        base = 0
    raw = cfg.get("apply_chunk_size_by_phase")
    if not isinstance(raw, Mapping):
        return base
    key = str(phase or "").lower()
    v = raw.get(key)
    if v is None:
        for k, vv in raw.items():
            if str(k).lower() == key:
                v = vv
                break
    try:
        n = int(v) if v is not None else 0
    except Exception:
        n = 0
    return n if n > 0 else base


def fixed_batches(seq: Sequence[T], size: int) -> Iterator[list[T]]:
    n = max(1, int(size))
    for i in range(0, len(seq), n):
        yield list(seq[i:i + n])


def legacy_batches(seq: Sequence[T], size: int) -> Iterator[list[T]]:
    # Flushes at every index divisible by size and at the last index,
    # so the first batch holds a single id: 1, size, size, ..., remainder.
    n = max(1, int(size))
    buf: list[T] = []
    last = len(seq) - 1
    for i, item in enumerate(seq):
        buf.append(item)
        if i % n == 0 or i == last:
            yield buf
            buf = []


def id_batches(ids: Sequence[T], size: int, mode: str = "legacy") -> Iterator[list[T]]:
    if str(mode or "").strip().lower() == "fixed":
        return fixed_batches(ids, size)
    return legacy_batches(ids, size)


def join_ids(batch: Sequence[Any]) -> str:
    return ",".join(str(x) for x in batch)
