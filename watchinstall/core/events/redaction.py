from __future__ import annotations

from typing import Any, Dict


# keys never written to event payloads or error context
REDACT_KEYS = {
    "password",
    "secret",
    "token",
    "api_key",
    "authorization",
    "credentials",
}


def redact(obj: Any) -> Any:
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            out[k] = "***REDACTED***" if str(k).lower() in REDACT_KEYS else redact(v)
        return out
    if isinstance(obj, (list, tuple)):
        return [redact(x) for x in obj]
    return obj
