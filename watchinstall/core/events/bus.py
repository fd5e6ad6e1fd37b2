from __future__ import annotations

import collections
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from watchinstall.core.events.models import BaseEvent, EventSeverity, SourceSubsystem


EventHandler = Callable[[BaseEvent], None]


class OverflowPolicy(str, Enum):
    DROP_OLDEST = "DROP_OLDEST"
    DROP_NEWEST = "DROP_NEWEST"


class EventBusConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    max_queue_size: int = Field(default=1000, ge=10, le=100_000)
    overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST
    shutdown_grace_seconds: float = Field(default=5.0, ge=0.1, le=60.0)
    keep_recent: int = Field(default=200, ge=10, le=10_000)


@dataclass
class EventBusStats:
    published_total: int = 0
    dropped_total: int = 0
    delivered_total: int = 0
    handler_errors_total: int = 0
    queue_depth: int = 0
    subscribers: int = 0
    per_type_published: Dict[str, int] = field(default_factory=dict)


@dataclass
class _Worker:
    thread: threading.Thread
    q: "queue.Queue[BaseEvent]"
    stop: threading.Event


@dataclass
class _Sub:
    event_type: str
    handler: EventHandler
    priority: int
    worker: _Worker


def _start_worker(*, name: str, handler: EventHandler) -> _Worker:
    q: "queue.Queue[BaseEvent]" = queue.Queue()
    stop = threading.Event()

    def run() -> None:
        while not stop.is_set() or not q.empty():
            try:
                ev = q.get(timeout=0.1)
            except queue.Empty:
                continue
            handler(ev)

    t = threading.Thread(target=run, name=name, daemon=True)
    t.start()
    return _Worker(thread=t, q=q, stop=stop)


def _stop_worker(w: _Worker, *, grace_seconds: float = 1.0) -> None:
    w.stop.set()
    w.thread.join(timeout=max(0.1, float(grace_seconds)))


class EventBus:
    """
    In-process internal event bus.

    - publish is non-blocking (drop on overflow per policy)
    - ordering guarantee: each subscriber processes events sequentially
    - handler failures are isolated (caught) and emitted as error events
    """

    def __init__(self, *, cfg: EventBusConfig, logger=None):
        self.cfg = cfg
        self.logger = logger

        self._lock = threading.Lock()
        self._cv = threading.Condition(self._lock)
        self._queue: Deque[BaseEvent] = collections.deque()
        self._subs: List[_Sub] = []
        self._running = False
        self._accepting = True
        self._stats = EventBusStats()
        self._recent_events: Deque[Dict[str, Any]] = collections.deque(maxlen=int(cfg.keep_recent))

        self._dispatcher_thread = threading.Thread(target=self._dispatch_loop, name="eventbus-dispatch", daemon=True)
        if self.cfg.enabled:
            self.start()

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._accepting = True
        self._dispatcher_thread.start()

    def enabled(self) -> bool:
        return bool(self.cfg.enabled) and self._running

    def set_enabled(self, enabled: bool) -> None:
        self.cfg.enabled = bool(enabled)

    def subscribe(self, event_type: str, handler: EventHandler, priority: int = 50) -> None:
        """
        event_type supports:
        - exact match ("install.installed")
        - prefix match ("install.*")
        - wildcard all ("*")
        """
        if not callable(handler):
            raise ValueError("handler must be callable")
        with self._lock:
            # one worker per handler to preserve ordering for that subscriber
            worker = _start_worker(name=f"eventbus-sub-{len(self._subs) + 1}", handler=lambda ev, h=handler: self._safe_handle(h, ev))
            self._subs.append(_Sub(event_type=str(event_type), handler=handler, priority=int(priority), worker=worker))
            self._subs.sort(key=lambda s: s.priority)
            self._stats.subscribers = len(self._subs)

    def unsubscribe(self, handler: EventHandler) -> int:
        with self._lock:
            removed = [s for s in self._subs if s.handler is handler]
            self._subs = [s for s in self._subs if s.handler is not handler]
            self._stats.subscribers = len(self._subs)
        for s in removed:
            _stop_worker(s.worker, grace_seconds=0.5)
        return len(removed)

    def publish(self, ev: BaseEvent) -> bool:
        if not self._accepting or not self.cfg.enabled:
            return False
        with self._lock:
            if len(self._queue) >= int(self.cfg.max_queue_size):
                self._stats.dropped_total += 1
                if self.cfg.overflow_policy == OverflowPolicy.DROP_NEWEST:
                    return False
                self._queue.popleft()
            self._queue.append(ev)
            self._stats.published_total += 1
            self._stats.per_type_published[ev.event_type] = self._stats.per_type_published.get(ev.event_type, 0) + 1
            self._stats.queue_depth = len(self._queue)
            self._recent_events.appendleft(ev.model_dump())
            self._cv.notify()
            return True

    publish_nowait = publish

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            st = self._stats
            return {
                "enabled": self.enabled(),
                "published_total": st.published_total,
                "dropped_total": st.dropped_total,
                "delivered_total": st.delivered_total,
                "handler_errors_total": st.handler_errors_total,
                "queue_depth": st.queue_depth,
                "subscribers": st.subscribers,
                "per_type_published": dict(st.per_type_published),
            }

    def dump_recent(self, n: int = 50) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._recent_events)[: max(1, int(n))]

    def shutdown(self, grace_seconds: Optional[float] = None) -> None:
        self._accepting = False
        if grace_seconds is None:
            grace_seconds = float(self.cfg.shutdown_grace_seconds)
        deadline = time.time() + float(grace_seconds)
        with self._lock:
            self._cv.notify_all()
        while time.time() < deadline:
            with self._lock:
                if not self._queue:
                    break
            time.sleep(0.05)
        self._running = False
        with self._lock:
            self._cv.notify_all()
        if self._dispatcher_thread.is_alive():
            self._dispatcher_thread.join(timeout=max(0.1, float(grace_seconds)))
        with self._lock:
            subs = list(self._subs)
            self._subs = []
            self._stats.subscribers = 0
        for s in subs:
            _stop_worker(s.worker, grace_seconds=max(0.1, deadline - time.time()))

    # ---- internals ----
    def _dispatch_loop(self) -> None:
        while self._running:
            with self._lock:
                if not self._queue:
                    self._stats.queue_depth = 0
                    self._cv.wait(timeout=0.2)
                    continue
                ev = self._queue.popleft()
                self._stats.queue_depth = len(self._queue)
                subs = list(self._subs)
            delivered = 0
            for s in subs:
                if _match(s.event_type, ev.event_type):
                    s.worker.q.put_nowait(ev)
                    delivered += 1
            if delivered:
                with self._lock:
                    self._stats.delivered_total += delivered

    def _safe_handle(self, handler: EventHandler, ev: BaseEvent) -> None:
        try:
            handler(ev)
        except Exception as e:  # noqa: BLE001
            with self._lock:
                self._stats.handler_errors_total += 1
            if self.logger:
                self.logger.warning(f"[{ev.trace_id or 'eventbus'}] event handler failed for {ev.event_type}: {e}")
            # avoid recursion storms: never re-report failures of error events
            if ev.event_type == "error.raised":
                return
            self.publish(
                BaseEvent(
                    event_type="error.raised",
                    trace_id=ev.trace_id,
                    source_subsystem=SourceSubsystem.events,
                    severity=EventSeverity.ERROR,
                    payload={"handler": getattr(handler, "__name__", "handler"), "event_type": ev.event_type, "error": str(e)[:500]},
                )
            )


def _match(subscribed: str, event_type: str) -> bool:
    if subscribed == "*":
        return True
    if subscribed.endswith(".*"):
        return event_type.startswith(subscribed[:-2])
    return subscribed == event_type
