from __future__ import annotations

import contextlib
import contextvars
import uuid
from typing import Iterator, Optional

_TRACE_ID: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("watchinstall.trace_id", default=None)


def new_trace_id() -> str:
    return uuid.uuid4().hex


def current_trace_id(default: Optional[str] = None) -> Optional[str]:
    trace_id = _TRACE_ID.get()
    return trace_id if trace_id else default


def resolve_trace_id(trace_id: Optional[str] = None) -> str:
    if trace_id:
        return str(trace_id)
    return current_trace_id() or new_trace_id()


@contextlib.contextmanager
def trace_context(trace_id: Optional[str] = None) -> Iterator[str]:
    """
    Bind a trace id for the duration of one reconciliation cycle.
    Nested contexts reuse the outer id unless one is given explicitly.
    """
    resolved = resolve_trace_id(trace_id)
    token = _TRACE_ID.set(resolved)
    try:
        yield resolved
    finally:
        _TRACE_ID.reset(token)
