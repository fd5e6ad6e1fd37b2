"""
Internal event bus + JSONL event sink.

Reconciliation cycles and scope changes publish events here; subscribers
(JSONL sink, tests, operators' hooks) consume them without blocking a cycle.
"""

from watchinstall.core.events.redaction import redact
from watchinstall.core.events.models import BaseEvent, EventSeverity, SourceSubsystem
from watchinstall.core.events.bus import EventBus, OverflowPolicy, EventBusConfig
from watchinstall.core.events.subscribers import CoreEventJsonlSubscriber

__all__ = [
    "redact",
    "BaseEvent",
    "EventSeverity",
    "SourceSubsystem",
    "EventBus",
    "OverflowPolicy",
    "EventBusConfig",
    "CoreEventJsonlSubscriber",
]
