"""Redaction helpers for inputs attached to degraded-mode reports."""

import json
import re
from typing import Any

SENSITIVE_KEY_RE = re.compile(r"(key|token|secret|password|authorization|cookie)", re.IGNORECASE)
REDACTED = "[REDACTED]"


def redact(value: Any, _seen: Any = None) -> Any:
    """Return a copy of `value` with sensitive dict keys replaced by [REDACTED].

    Dicts and lists are walked recursively. Cycles become "[Circular]".
    """
    seen = _seen if _seen is not None else set()

    if isinstance(value, dict):
        if id(value) in seen:
            return "[Circular]"
        seen.add(id(value))
        result = {
            key: REDACTED if SENSITIVE_KEY_RE.search(str(key)) else redact(item, seen)
            for key, item in value.items()
        }
        seen.discard(id(value))
        return result

    if isinstance(value, (list, tuple)):
        if id(value) in seen:
            return "[Circular]"
        seen.add(id(value))
        result = [redact(item, seen) for item in value]
        seen.discard(id(value))
        return result

    return value


def summarize_redacted_input(value: Any, max_chars: int = 1200) -> str:
    """Pretty JSON of the redacted value, truncated to max_chars."""
    redacted = redact(value)
    try:
        text = json.dumps(redacted, indent=2, default=str)
    except (TypeError, ValueError):
        return str(redacted)
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}\n…(truncated)…"
