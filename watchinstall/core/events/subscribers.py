from __future__ import annotations

import json
import os
import threading

from watchinstall.core.events.models import BaseEvent


class CoreEventJsonlSubscriber:
    """
    Writes all events to logs/events/install_events.jsonl (redacted payload only).
    """

    def __init__(self, *, path: str = os.path.join("logs", "events", "install_events.jsonl")):
        self.path = path
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def __call__(self, ev: BaseEvent) -> None:
        line = json.dumps(ev.model_dump(mode="json"), ensure_ascii=False)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
