# /providers/_log.py
# MovieSync - provider logging: log("TRAKT", "movies", "info", "fetched", count=3)
from __future__ import annotations

import os
from typing import Any

from ms_platform._logging import Logger, level_no, log as _root

_CHILDREN: dict[str, Logger] = {}
_SEVERITY = {"debug": "debug", "trace": "debug", "info": "info", "success": "info",
             "warn": "warn", "warning": "warn", "error": "error"}


def _env_threshold(provider: str) -> int | None:
    v = os.getenv(f"MS_{provider}_LOG_LEVEL") or ""
    if v.strip():
        return level_no(v)
    if (os.getenv(f"MS_{provider}_DEBUG") or "").strip().lower() in ("1", "true", "yes", "on"):
        return level_no("debug")
    return None


def log(provider: str, feature: str, level: str, msg: str, **fields: Any) -> None:
    provider_s = str(provider).strip().upper()
    tag = f"{provider_s}:{str(feature).strip().lower()}"
    child = _CHILDREN.get(tag)
    if child is None:
        child = _CHILDREN[tag] = _root.child(tag)
    lvl = str(level or "info").strip().lower()
    label = "WARN" if lvl == "warning" else lvl.upper()
    # MS_<PROVIDER>_LOG_LEVEL overrides the root level for this provider only
    child._emit(_SEVERITY.get(lvl, "info"), label, (msg,), fields, threshold=_env_threshold(provider_s))
