# /providers/_mod_common.py
# MovieSync - HTTP plumbing shared by remote adapters: sessions, retries, rate limits.
from __future__ import annotations

import json
import os
import threading
import time
from typing import Any, Callable, Mapping

import requests

from ._log import log as _plog

__all__ = [
    "HitSession",
    "build_session",
    "parse_rate_limit",
    "retry_after",
    "safe_json",
    "request_with_retries",
]

EmitFn = Callable[[str, Mapping[str, Any]], None]
RETRY_STATUS: tuple[int, ...] = (429, 500, 502, 503, 504)


class HitSession(requests.Session):
    """Counts calls per session; with MS_API_HITS set each call is also emitted as `api:hit`."""

    def __init__(self, provider: str, emit: EmitFn | None = None, emit_hits: bool | None = None):
        super().__init__()
        self.provider = provider
        self.hits = 0
        self._hits_lock = threading.Lock()
        self._emit = emit
        self._emit_hits = bool(os.getenv("MS_API_HITS")) if emit_hits is None else bool(emit_hits)

    def request(self, method: str, url: str, *args: Any, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        with self._hits_lock:
            self.hits += 1
        try:
            return super().request(method, url, *args, **kwargs)
        finally:
            if self._emit_hits and self._emit:
                try:
                    self._emit("api:hit", {"provider": self.provider, "method": method.upper(), "url": url})
                except Exception as e:
                    _plog(self.provider, "http", "debug", "hit sink failed", error=str(e))


def build_session(provider: str, emit: EmitFn | None = None, *, emit_hits: bool | None = None) -> HitSession:
    return HitSession(provider, emit, emit_hits)


def _header_int(h: Mapping[str, Any], name: str) -> int | None:
    # Trakt sends X-RateLimit-*, some proxies rewrite to RateLimit-*
    for key in (f"X-RateLimit-{name}", f"RateLimit-{name}"):
        raw = h.get(key)
        if raw is None:
            continue
        try:
            return int(raw)
        except (TypeError, ValueError):
            return None
    return None


def parse_rate_limit(h: Mapping[str, Any]) -> dict[str, int | None]:
    return {k.lower(): _header_int(h, k) for k in ("Limit", "Remaining", "Reset")}


def retry_after(resp: requests.Response, default: float) -> float:
    raw = resp.headers.get("Retry-After") if resp.status_code == 429 else None
    try:
        return max(default, float(raw)) if raw else default
    except ValueError:
        return default


def safe_json(resp: requests.Response) -> Any:
    body = resp.text or ""
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except ValueError:
        return {}


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = 10.0,
    max_retries: int = 3,
    retry_on: tuple[int, ...] = RETRY_STATUS,
    backoff_base: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> requests.Response:
    """
    One request with exponential backoff. A retryable status on the final attempt
    is returned as-is; a network error on the final attempt raises RequestException.
    """
    attempts = max(1, int(max_retries))
    provider = getattr(session, "provider", "HTTP")
    for attempt in range(attempts):
        final = attempt == attempts - 1
        backoff = backoff_base * (2 ** attempt)
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            if final:
                raise requests.RequestException(f"request failed after {attempts} attempts: {method} {url}: {e}") from e
            _plog(provider, "http", "debug", "retry", method=method, url=url, attempt=attempt + 1, error=str(e))
            sleep(backoff)
            continue
        if resp.status_code not in retry_on or final:
            return resp
        wait = retry_after(resp, backoff)
        _plog(provider, "http", "debug", "retry", method=method, url=url, attempt=attempt + 1,
              status=resp.status_code, wait=wait)
        sleep(wait)
    raise requests.RequestException(f"request failed: {method} {url}")
