# ms_platform/_logging.py
# Console logger for MovieSync: "[MODULE] LEVEL message key=value", optional JSON lines.
from __future__ import annotations
import sys, datetime, json, os, threading, time
from typing import Any, Optional, TextIO, Mapping, Dict

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}
_ALIASES = {"off": "silent", "warning": "warn", "trace": "debug"}

_LEVEL_COLOR = {
    "DEBUG": YELLOW,
    "INFO": BLUE,
    "WARN": YELLOW,
    "ERROR": RED,
    "SUCCESS": GREEN,
}


def _env_on(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


def level_no(name: Any, default: int = 20) -> int:
    key = str(name or "").strip().lower()
    return LEVELS.get(_ALIASES.get(key, key), default)


# ── runtime debug gate (MS_DEBUG, then runtime.debug in config.json, cached 5s) ──
_CFG_CACHE: Dict[str, Any] | None = None
_CFG_TS: float = 0.0


def _debug_enabled() -> bool:
    global _CFG_CACHE, _CFG_TS
    if _env_on("MS_DEBUG"):
        return True
    now = time.time()
    if _CFG_CACHE is None or (now - _CFG_TS) > 5.0:
        try:
            from .config_base import config_path
            with open(config_path(), "r", encoding="utf-8") as f:
                _CFG_CACHE = json.load(f)
        except (OSError, ValueError):
            _CFG_CACHE = {}
        _CFG_TS = now
    rt = (_CFG_CACHE or {}).get("runtime") or {}
    return bool(rt.get("debug"))


def _one_line(v: Any) -> str:
    return " ".join(str(v if v is not None else "").split())


def format_fields(fields: Mapping[str, Any]) -> str:
    parts: list[str] = []
    for k in sorted(fields):
        vs = _one_line(fields[k])
        if fields[k] is None or vs == "":
            continue
        if any(ch.isspace() or ch in '"=:' for ch in vs):
            vs = json.dumps(vs, ensure_ascii=False)
        parts.append(f"{k}={vs}")
    return " ".join(parts)


class Logger:
    def __init__(
        self,
        stream: TextIO = sys.stdout,
        level: str = "info",
        use_color: Optional[bool] = None,
        show_time: bool = True,
        time_fmt: str = "%Y-%m-%d %H:%M:%S",
        *,
        _name: Optional[str] = None,
        _root: Optional["Logger"] = None,
        _lock: Optional[threading.Lock] = None,
    ):
        self.stream = stream
        self.level_no = level_no(level)
        if use_color is None:
            use_color = os.getenv("NO_COLOR") is None and (os.getenv("MS_LOG_COLOR") or "auto").lower() not in ("0", "false", "no", "off")
        self.use_color = use_color
        self.show_time = show_time
        self.time_fmt = time_fmt
        self.name = _name
        self._root = _root
        self._lock = _lock or threading.Lock()

    # Configuration: children follow the root's level and color
    def set_level(self, level: str) -> None:
        (self._root or self).level_no = level_no(level, (self._root or self).level_no)

    def enable_color(self, on: bool = True) -> None:
        (self._root or self).use_color = on

    def child(self, name: str) -> "Logger":
        root = self._root or self
        return Logger(root.stream, show_time=root.show_time, time_fmt=root.time_fmt,
                      use_color=root.use_color, _name=name, _root=root, _lock=root._lock)

    @property
    def _effective_level(self) -> int:
        return (self._root or self).level_no

    @property
    def _color(self) -> bool:
        return (self._root or self).use_color

    # Formatting
    def _fmt_text(self, label: str, msg: str, fields: Mapping[str, Any]) -> str:
        col = _LEVEL_COLOR.get(label) if self._color else None
        lvl = f"{col}{label}{RESET}" if col else label
        head = f"[{self.name}]" if self.name else ""
        line = f"{head} {lvl} {msg}".strip()
        tail = format_fields(fields)
        if tail:
            line = f"{line} {tail}"
        if self.show_time:
            ts = datetime.datetime.now().strftime(self.time_fmt)
            return f"{DIM}[{ts}]{RESET} {line}" if self._color else f"[{ts}] {line}"
        return line

    def _fmt_json(self, label: str, msg: str, fields: Mapping[str, Any]) -> str:
        payload = {
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "module": self.name,
            "level": label,
            "msg": msg,
            **fields,
        }
        return json.dumps(payload, ensure_ascii=False, default=str)

    def _emit(self, severity: str, label: str, parts: tuple[Any, ...], fields: Mapping[str, Any],
              *, threshold: Optional[int] = None) -> None:
        sev = LEVELS[severity]
        limit = self._effective_level if threshold is None else threshold
        if limit > sev and not (severity == "debug" and _debug_enabled()):
            return
        msg = _one_line(" ".join(str(p) for p in parts))
        if (os.getenv("MS_LOG_FORMAT") or "").strip().lower() == "json":
            text = self._fmt_json(label, msg, fields)
        else:
            text = self._fmt_text(label, msg, fields)
        with self._lock:
            self.stream.write(text + "\n")
            self.stream.flush()

    # Public API
    def debug(self, *parts: Any, **fields: Any) -> None:
        self._emit("debug", "DEBUG", parts, fields)

    def info(self, *parts: Any, **fields: Any) -> None:
        self._emit("info", "INFO", parts, fields)

    def warn(self, *parts: Any, **fields: Any) -> None:
        self._emit("warn", "WARN", parts, fields)

    def error(self, *parts: Any, **fields: Any) -> None:
        self._emit("error", "ERROR", parts, fields)

    def success(self, *parts: Any, **fields: Any) -> None:
        self._emit("info", "SUCCESS", parts, fields)

    # Callable adapter: logger("text", level="warn", count=3)
    def __call__(self, message: str, *, level: str = "info", **fields: Any) -> None:
        lvl = _ALIASES.get(str(level).lower(), str(level).lower())
        fn = {"debug": self.debug, "warn": self.warn, "error": self.error, "success": self.success}.get(lvl, self.info)
        fn(message, **fields)


# default instance; the level comes from MS_LOG_LEVEL until the CLI applies config
log = Logger(level=os.getenv("MS_LOG_LEVEL") or "info")

__all__ = ["Logger", "log", "LEVELS", "level_no", "format_fields"]
