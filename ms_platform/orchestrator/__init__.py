# Public surface of the orchestrator package.
from ._types import (
    AddTo,
    LocalMovie,
    MovieRecord,
    MutationOp,
    NoSession,
    NotConnected,
    StoreUnavailable,
    SyncReport,
    SyncStatus,
    TransientError,
)
from .facade import MovieSync

__all__ = [
    "MovieSync",
    "SyncStatus",
    "SyncReport",
    "AddTo",
    "MovieRecord",
    "LocalMovie",
    "MutationOp",
    "StoreUnavailable",
    "TransientError",
    "NotConnected",
    "NoSession",
]
