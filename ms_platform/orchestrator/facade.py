# ms_platform/orchestrator/facade.py
# Reconciliation of the local movie store against the remote watchlist + collection.
from __future__ import annotations

import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from .._logging import log as _host_log
from ..config_base import DEFAULT_CFG, _deep_merge, cfg_int
from ._applier import apply_batched
from ._chunking import effective_chunk_size, id_batches, join_ids
from ._index import MembershipIndex
from ._logging import Emitter
from ._mapper import project_full
from ._planner import COLLECTION_FLAGS, WATCHLIST_FLAGS, build_delete_ops, diff_pass, skipped_count
from ._types import (
    AddTo,
    ApplyResult,
    Credentials,
    LocalStore,
    MovieRecord,
    MutationOp,
    NoSession,
    NotConnected,
    RemoteService,
    StoreUnavailable,
    SyncReport,
    SyncStatus,
    TransientError,
)

SUCCESS = SyncStatus.SUCCESS
INCOMPLETE = SyncStatus.INCOMPLETE

# one sync (or single-item change) at a time per process
SYNC_LOCK = threading.Lock()

_FLAG = {AddTo.WATCHLIST: "in_watchlist", AddTo.COLLECTION: "in_collection"}
_OTHER = {AddTo.WATCHLIST: "in_collection", AddTo.COLLECTION: "in_watchlist"}


class MovieSync:
    """
    Keeps the local movie store eventually consistent with the remote lists.

    All calls block on network and store I/O; run them from a background worker
    (`sync_async`) rather than a latency-sensitive thread. Results are only ever
    SUCCESS or INCOMPLETE; an incomplete run keeps whatever it already applied.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteService,
        *,
        credentials: Credentials,
        is_connected: Callable[[], bool],
        cfg: Optional[Mapping[str, Any]] = None,
        executor: Optional[Executor] = None,
        lock: Optional[threading.Lock] = None,
        on_progress: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.remote = remote
        self.credentials = credentials
        self.is_connected = is_connected
        self.cfg: Dict[str, Any] = _deep_merge(DEFAULT_CFG, dict(cfg or {}))
        self._executor = executor
        self._owns_executor = executor is None
        self._lock = lock or SYNC_LOCK
        self.emitter = Emitter(on_progress)
        self.log = _host_log.child("SYNC")
        self.last_report: Optional[SyncReport] = None

    # ── plumbing ──────────────────────────────────────────────────────────
    @property
    def executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="moviesync")
        return self._executor

    def close(self) -> None:
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _online(self) -> bool:
        try:
            return bool(self.is_connected())
        except Exception as e:
            self.log.warn(f"connectivity check failed: {e}")
            return False

    def _apply(self, phase: str, ops: Sequence[MutationOp]) -> ApplyResult:
        store_cfg = self.cfg.get("store") or {}
        res = apply_batched(
            self.store,
            ops,
            effective_chunk_size(store_cfg, phase),
            tag=phase,
            emit=self.emitter.emit,
            chunk_pause_ms=cfg_int(store_cfg, "apply_chunk_pause_ms", 0),
        )
        for err in res.errors:
            self.log.warn(f"{phase}: {err}")
        return res

    def _finish(self, report: SyncReport, status: SyncStatus, *, stopped_at: str | None = None,
                note: str | None = None) -> SyncStatus:
        if report.failed_chunks and status is SUCCESS:
            status = INCOMPLETE
            note = note or "some store chunks failed"
        report.status = status
        report.stopped_at = stopped_at
        if note:
            report.notes.append(note)
        report.finished_at = time.time()
        self.emitter.emit("sync:done", status=status.value, stopped_at=stopped_at,
                          updated=report.updated, deleted=report.deleted, inserted=report.inserted,
                          failed_chunks=report.failed_chunks, ms=report.duration_ms)
        line = (f"sync {status.value}: updated={report.updated} deleted={report.deleted} "
                f"inserted={report.inserted} failed_chunks={report.failed_chunks}")
        if stopped_at:
            line += f" stopped_at={stopped_at}"
        if note:
            line += f" ({note})"
        if status is SUCCESS:
            self.log.success(line)
        else:
            self.log.warn(line)
        return status

    # ── full sync ─────────────────────────────────────────────────────────
    def sync(self) -> SyncStatus:
        """
        Updates the local store against the remote watchlist and collection: adds,
        updates and removes movies. Never raises.
        """
        if not self._lock.acquire(blocking=False):
            self.log.warn("sync already in progress, skipping")
            return INCOMPLETE
        report = SyncReport(started_at=time.time())
        self.last_report = report
        try:
            return self._run(report)
        except Exception as e:
            self.log.error(f"sync aborted: {e!r}")
            return self._finish(report, INCOMPLETE, stopped_at="unexpected", note=str(e))
        finally:
            self._lock.release()

    def sync_async(self) -> Future:
        return self.executor.submit(self.sync)

    def _require_online(self) -> None:
        if not self._online():
            raise NotConnected("offline")

    def _run(self, report: SyncReport) -> SyncStatus:
        phase = "session"
        sync_cfg = self.cfg.get("sync") or {}
        try:
            if not self.credentials.has_credentials():
                raise NoSession("no remote session")
            user = self.credentials.username()
            self.emitter.emit("sync:start", user=user)

            phase = "fetch_watchlist"
            self._require_online()

            phase = "local_ids"
            index = MembershipIndex.from_store(self.store)

            phase = "fetch_watchlist"
            watchlist = self.remote.fetch_watchlist(user)
            self._pass("watchlist", watchlist, index, WATCHLIST_FLAGS, report)

            phase = "fetch_collection"
            self._require_online()
            collection = self.remote.fetch_collection(user, str(sync_cfg.get("collection_extended") or "min"))
            self._pass("collection", collection, index, COLLECTION_FLAGS, report)

            # remove movies on neither list
            res = self._apply("delete", build_delete_ops(index.pending_remove))
            report.deleted += res.applied
            report.failed_chunks += res.failed_chunks

            phase = "fetch_new"
            self._require_online()
            self._insert_new(index.pending_add, report)
        except NoSession as e:
            return self._finish(report, SUCCESS, note=str(e))
        except (NotConnected, TransientError, StoreUnavailable) as e:
            return self._finish(report, INCOMPLETE, stopped_at=phase, note=str(e))
        return self._finish(report, SUCCESS)

    def _pass(self, phase: str, remote: Sequence[MovieRecord], index: MembershipIndex,
              flags: Mapping[str, Any], report: SyncReport) -> None:
        plan = diff_pass(remote, index.local_ids, flags)
        index.absorb(plan)
        skipped = skipped_count(remote)
        self.log.debug(f"{phase}: remote={len(remote)} matched={len(plan.matched)} "
                       f"new={len(plan.unmatched)} skipped={skipped}")
        res = self._apply(phase, plan.ops)
        report.updated += res.applied
        report.failed_chunks += res.failed_chunks

    def _insert_new(self, ids: Sequence[int], report: SyncReport) -> None:
        """
        Downloads summaries for new ids batch by batch and inserts them. A failed
        fetch stops the loop (TransientError propagates); earlier batches stay.
        """
        sync_cfg = self.cfg.get("sync") or {}
        size = cfg_int(sync_cfg, "summary_batch_size", 10)
        mode = str(sync_cfg.get("summary_batch_mode") or "legacy")
        extended = str(sync_cfg.get("summary_extended") or "full")
        total = len(ids)
        done = 0
        for batch in id_batches(list(ids), size, mode):
            records = self.remote.fetch_summaries(join_ids(batch), extended)
            # flags come from the remote summary here, not from an explicit add
            movies = [project_full(r) for r in records]
            if movies:
                try:
                    report.inserted += int(self.store.bulk_insert(movies) or 0)
                except StoreUnavailable as e:
                    report.failed_chunks += 1
                    self.log.warn(f"insert of {len(movies)} movies failed: {e}")
            done += len(batch)
            self.emitter.emit("insert:progress", done=done, total=total)

    # ── single-item operations ────────────────────────────────────────────
    def add_to_watchlist(self, tmdb_id: int) -> bool:
        return self._add(int(tmdb_id), AddTo.WATCHLIST)

    def remove_from_watchlist(self, tmdb_id: int) -> bool:
        return self._remove(int(tmdb_id), AddTo.WATCHLIST)

    def add_to_collection(self, tmdb_id: int) -> bool:
        return self._add(int(tmdb_id), AddTo.COLLECTION)

    def remove_from_collection(self, tmdb_id: int) -> bool:
        return self._remove(int(tmdb_id), AddTo.COLLECTION)

    def _fire_remote(self, action: str, target: AddTo, tmdb_id: int) -> bool:
        """
        Sends the remote change without waiting for it. The local store is updated
        regardless of the outcome; the next full sync settles any difference.
        Returns False when signed in but offline, so neither side changes.
        """
        if not self.credentials.has_credentials():
            return True
        if not self._online():
            self.log.warn(f"{action} {target.value} tmdb:{tmdb_id} skipped: offline")
            return False
        fn = getattr(self.remote, f"{action}_{'to' if action == 'add' else 'from'}_{target.value}")

        def _done(fut: Future) -> None:
            exc = fut.exception()
            if exc is not None:
                self.log.warn(f"remote {action} {target.value} tmdb:{tmdb_id} failed: {exc}")

        self.executor.submit(fn, tmdb_id).add_done_callback(_done)
        return True

    def _add(self, tmdb_id: int, target: AddTo) -> bool:
        with self._lock:
            if not self._fire_remote("add", target, tmdb_id):
                return False
            try:
                existing = self.store.query_by_id(tmdb_id)
                if existing is not None:
                    self.store.update(tmdb_id, {_FLAG[target]: 1})
                    return True
            except StoreUnavailable as e:
                self.log.warn(f"add {target.value} tmdb:{tmdb_id}: store unavailable: {e}")
                return False

            try:
                record = self.remote.fetch_summary(tmdb_id)
            except TransientError as e:
                self.log.warn(f"add {target.value} tmdb:{tmdb_id}: summary failed: {e}")
                return False
            try:
                self.store.insert(project_full(record, target))
            except StoreUnavailable as e:
                self.log.warn(f"add {target.value} tmdb:{tmdb_id}: insert failed: {e}")
                return False
            return True

    def _remove(self, tmdb_id: int, target: AddTo) -> bool:
        with self._lock:
            if not self._fire_remote("remove", target, tmdb_id):
                return False
            try:
                existing = self.store.query_by_id(tmdb_id)
                if existing is None:
                    return False
                if getattr(existing, _OTHER[target]):
                    # still on the other list, just clear this flag
                    self.store.update(tmdb_id, {_FLAG[target]: 0})
                else:
                    self.store.delete(tmdb_id)
                return True
            except StoreUnavailable as e:
                self.log.warn(f"remove {target.value} tmdb:{tmdb_id}: store unavailable: {e}")
                return False
