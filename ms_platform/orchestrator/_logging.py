# ms_platform/orchestrator/_logging.py
# Progress events for a sync run, one compact JSON line per event.
from __future__ import annotations

import json
import time
from typing import Any, Callable, Optional


class Emitter:
    def __init__(self, cb: Optional[Callable[[str], None]]):
        self.cb = cb
        self.seq = 0

    def emit(self, event: str, **data: Any) -> None:
        if not self.cb:
            return
        self.seq += 1
        payload = {"event": event, "seq": self.seq, "ts": int(time.time() * 1000)}
        payload.update(data)
        try:
            self.cb(json.dumps(payload, separators=(",", ":"), default=str))
        except Exception:
            # a broken progress sink never aborts a sync
            pass
