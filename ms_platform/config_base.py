# ms_platform/config_base.py
from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in container that mounts /config)
      3) Project root (one level up from this package)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Remote ----------------------------------------------------------------
    "trakt": {
        "client_id": "",                                # From your Trakt app
        "access_token": "",                             # OAuth2 access token (login flow is external)
        "username": "",                                 # Trakt user slug whose lists are synced
        "timeout": 10,                                  # HTTP timeout (seconds)
        "max_retries": 3,                               # Retry budget for 429/5xx per request
    },

    # --- Local store -----------------------------------------------------------
    "store": {
        "path": "",                                     # Movie store file; empty = <CONFIG_BASE>/movies.json
        "apply_chunk_size": 100,                        # Max ops per store transaction
        "apply_chunk_size_by_phase": {},                # e.g. {"delete": 50}
        "apply_chunk_pause_ms": 0,                      # Optional pause between chunks
    },

    # --- Sync ------------------------------------------------------------------
    "sync": {
        "summary_batch_size": 10,                       # Ids per summaries request
        "summary_batch_mode": "legacy",                 # "legacy" (index % size boundaries) or "fixed"
        "collection_extended": "min",                   # Detail level for the collection fetch
        "summary_extended": "full",                     # Detail level for summaries of new movies
    },

    # --- Connectivity ----------------------------------------------------------
    "connectivity": {
        "probe_url": "https://api.trakt.tv",            # Reachability probe target
        "timeout": 3,                                   # Probe timeout (seconds)
        "ttl_sec": 15,                                  # Cache probe results this long
    },

    # --- Runtime ---------------------------------------------------------------
    "runtime": {
        "debug": False,                                 # Verbose logging
        "log_level": "info",                            # silent | error | warn | info | debug
    },
}


# ------------------------------------------------------------
# Helpers: paths, IO, merging
# ------------------------------------------------------------
def _cfg_file() -> Path:
    return CONFIG_BASE() / "config.json"

def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    import secrets, threading, time
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)  # type: ignore[assignment]
        else:
            out[k] = v
    return out


def cfg_int(d: Any, key: str, default: int) -> int:
    try:
        return int((d or {}).get(key, default))
    except Exception:
        return default


def store_path(cfg: Dict[str, Any]) -> Path:
    raw = str(((cfg.get("store") or {}).get("path") or "")).strip()
    return Path(raw) if raw else CONFIG_BASE() / "movies.json"


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """
    Read config.json merged over DEFAULT_CFG.
    """
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except Exception:
            user_cfg = {}
    return _deep_merge(DEFAULT_CFG, user_cfg)


def save_config(cfg: Dict[str, Any]) -> None:
    """
    Write to config.json
    """
    _write_json_atomic(_cfg_file(), dict(cfg or {}))
