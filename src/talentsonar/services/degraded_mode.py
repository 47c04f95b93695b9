"""
Degraded-mode reporting.

When a feature silently falls back (heuristic instead of AI scoring, no
semantic score, ...) the service reports it here. Reports are logged and kept
in a bounded in-process buffer that the health endpoint surfaces.
"""

import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel

from talentsonar.utils.exceptions import AppError
from talentsonar.utils.logger import get_logger
from talentsonar.utils.redact import summarize_redacted_input

logger = get_logger(__name__)

MAX_EVENTS = 100

_UNSET = object()


class DegradedModeEvent(BaseModel):
    feature: str
    error_code: str
    message: str
    what_might_be_missing: str
    retry_after_ms: Optional[int] = None
    candidate_id: Optional[str] = None
    job_id: Optional[str] = None
    debug_id: Optional[str] = None
    occurred_at: datetime
    redacted_input_summary: Optional[str] = None


class DegradedModeService:
    def __init__(self, max_events: int = MAX_EVENTS):
        self._events: "deque[DegradedModeEvent]" = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def report(
        self,
        feature: str,
        error: AppError,
        what_might_be_missing: str,
        candidate_id: Optional[str] = None,
        job_id: Optional[str] = None,
        input: Any = _UNSET,
    ) -> DegradedModeEvent:
        event = DegradedModeEvent(
            feature=feature,
            error_code=error.code,
            message=error.message,
            what_might_be_missing=what_might_be_missing,
            retry_after_ms=error.retry_after_ms,
            candidate_id=candidate_id,
            job_id=job_id,
            debug_id=error.debug_id,
            occurred_at=datetime.now(timezone.utc),
            redacted_input_summary=None if input is _UNSET else summarize_redacted_input(input),
        )
        with self._lock:
            self._events.append(event)

        logger.warning(
            f"Degraded mode: {feature}",
            extra={
                "extra_fields": {
                    "feature": feature,
                    "error_code": error.code,
                    "internal_message": error.internal_message,
                    "what_might_be_missing": what_might_be_missing,
                    "debug_id": error.debug_id,
                }
            },
        )
        return event

    def clear(self, feature: Optional[str] = None) -> None:
        """Forget reports for one feature, or all of them."""
        with self._lock:
            if feature is None:
                self._events.clear()
                return
            kept = [e for e in self._events if e.feature != feature]
            self._events.clear()
            self._events.extend(kept)

    def recent(self, limit: int = 20) -> List[DegradedModeEvent]:
        """Newest first."""
        with self._lock:
            events = list(self._events)
        return list(reversed(events))[:limit]

    def active_features(self) -> List[str]:
        with self._lock:
            features = {e.feature for e in self._events}
        return sorted(features)


_degraded_mode_service: Optional[DegradedModeService] = None


def get_degraded_mode_service() -> DegradedModeService:
    global _degraded_mode_service
    if _degraded_mode_service is None:
        _degraded_mode_service = DegradedModeService()
    return _degraded_mode_service
