# ms_platform/connectivity.py
# Cached reachability probe used as a cooperative cancellation point.
from __future__ import annotations

import threading
import time
from typing import Any, Dict, Tuple

import requests

from .config_base import cfg_int

PROBE_URL = "https://api.trakt.tv"

# ---- Cache ----
_PROBE_CACHE: Dict[str, Tuple[float, bool]] = {}
_LOCK = threading.Lock()


def _conn_cfg(cfg: Dict[str, Any]) -> Dict[str, Any]:
    c = (cfg or {}).get("connectivity") or {}
    return c if isinstance(c, dict) else {}


def probe(url: str, timeout: float = 3.0) -> bool:
    # any HTTP answer means the network path works, status is irrelevant
    try:
        requests.head(url, timeout=timeout, allow_redirects=True)
    except requests.RequestException:
        return False
    return True


def is_connected(cfg: Dict[str, Any], *, max_age_sec: int | None = None) -> bool:
    c = _conn_cfg(cfg)
    url = str(c.get("probe_url") or PROBE_URL)
    ttl = cfg_int(c, "ttl_sec", 15) if max_age_sec is None else int(max_age_sec)
    now = time.time()
    with _LOCK:
        ts, ok = _PROBE_CACHE.get(url, (0.0, False))
        if ts and now - ts < ttl:
            return ok
    ok = probe(url, timeout=float(c.get("timeout") or 3))
    with _LOCK:
        _PROBE_CACHE[url] = (time.time(), ok)
    return ok


def reset_cache() -> None:
    with _LOCK:
        _PROBE_CACHE.clear()


class Connectivity:
    """
    Callable bound to a config, polled by the orchestrator before each network
    phase. Every call probes afresh so a link lost mid-run is noticed.
    """

    def __init__(self, cfg: Dict[str, Any]):
        self.cfg = cfg

    def __call__(self) -> bool:
        return is_connected(self.cfg, max_age_sec=0)
