from __future__ import annotations

import json
import os
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, List, Optional

from hrdir.core.redaction import redact


class AccessAuditLogger:
    """
    Writes access decisions to a JSONL file and retains a small in-memory tail.

    `path=None` keeps the tail only (no file output).
    """

    def __init__(self, *, path: Optional[str] = os.path.join("logs", "access.jsonl"), keep_last: int = 200):
        self.path = path
        self._lock = threading.Lock()
        self._recent: Deque[Dict[str, Any]] = deque(maxlen=max(1, int(keep_last)))

    def log_decision(self, *, trace_id: str, severity: str, event: str, outcome: str, details: Optional[Dict[str, Any]] = None) -> None:
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "trace_id": trace_id,
            "severity": severity,
            "event": event,
            "outcome": outcome,
            "details": redact(details or {}),
        }
        with self._lock:
            self._recent.appendleft(entry)
            if self.path:
                parent = os.path.dirname(self.path)
                if parent:
                    os.makedirs(parent, exist_ok=True)
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(json.dumps(entry, ensure_ascii=False) + "\n")

    def recent(self, n: int = 50) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._recent)[: max(1, int(n))]
