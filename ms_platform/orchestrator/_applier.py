from __future__ import annotations
import time
from typing import Any, Callable, List, Sequence

from ._types import ApplyResult, LocalStore, MutationOp

#--- Chunked apply -------------------------------------------------------------
def apply_batched(store: LocalStore, ops: Sequence[MutationOp], max_batch_size: int, *,
                  tag: str = "apply", emit: Callable[..., Any] | None = None,
                  chunk_pause_ms: int = 0) -> ApplyResult:
    """
    Apply ops in chunks of at most max_batch_size, one store transaction per chunk.
    A failing chunk is recorded and the remaining chunks are still attempted.
    """
    _emit = emit or (lambda *_a, **_k: None)
    items: List[MutationOp] = list(ops or ())
    total = len(items)
    res = ApplyResult(attempted=total)
    if total == 0:
        return res

    csize = int(max_batch_size or 0)
    if csize <= 0:
        csize = total

    _emit(f"apply:{tag}:start", count=total, chunk_size=csize)
    done = 0
    for i in range(0, total, csize):
        chunk = items[i:i + csize]
        res.chunks += 1
        try:
            store.apply_batch(chunk)
            res.applied += len(chunk)
            ok = True
        except Exception as e:
            res.ok = False
            res.failed_chunks += 1
            res.errors.append(f"chunk {res.chunks}: {e}")
            ok = False
        done += len(chunk)
        _emit(f"apply:{tag}:progress", done=done, total=total, ok=ok)
        pause = int(chunk_pause_ms or 0)
        if pause and done < total:
            time.sleep(pause / 1000.0)

    _emit(f"apply:{tag}:done", attempted=res.attempted, applied=res.applied,
          failed_chunks=res.failed_chunks, ok=res.ok)
    return res
