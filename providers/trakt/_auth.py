# /providers/trakt/_auth.py
# Session state only; the OAuth login flow lives outside this project.
from __future__ import annotations

from typing import Any, Mapping


class TraktCredentials:
    def __init__(self, cfg: Mapping[str, Any]):
        t = cfg.get("trakt") if isinstance(cfg.get("trakt"), Mapping) else cfg
        self._cfg: Mapping[str, Any] = t or {}

    @property
    def client_id(self) -> str:
        return str(self._cfg.get("client_id") or "").strip()

    @property
    def access_token(self) -> str:
        return str(self._cfg.get("access_token") or "").strip()

    def username(self) -> str:
        return str(self._cfg.get("username") or "").strip()

    def has_credentials(self) -> bool:
        return bool(self.access_token and self.username())
