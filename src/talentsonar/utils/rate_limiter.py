"""
Rate Limiting Utilities for LLM Access.

The LLM provider enforces its own quotas; hitting them repeatedly only makes the
wait longer. This module keeps us under a local request budget and honours the
provider's retry hints:

- RequestGate: token bucket refilled once per window. Callers block briefly
  for the next refill, or get a RateLimitedError if the wait would be too long.
- BackoffTracker: remembers "do not call before T" after a provider 429.
- parse_retry_after_seconds: extracts the provider's retry hint from an error.
- get_client_ip: best-effort client address for request logs.
"""

import re
import threading
import time
from typing import Any, Callable, Optional

from talentsonar.utils.exceptions import RateLimitedError
from talentsonar.utils.logger import get_logger

logger = get_logger(__name__)

_RETRY_MESSAGE_PATTERNS = (
    re.compile(r'"retryDelay"\s*:\s*"([0-9.]+)s"', re.IGNORECASE),
    re.compile(r"(?:please\s+)?(?:try|retry)\s+again\s+in\s+([0-9.]+)\s*s", re.IGNORECASE),
    re.compile(r"please\s+retry\s+in\s+([0-9.]+)\s*s", re.IGNORECASE),
)

MIN_RETRY_SECONDS = 1.0


class RequestGate:
    """Token bucket in front of the LLM provider.

    Args:
        tokens: Requests allowed per window.
        window_seconds: Window length; the bucket refills to full after it.
        max_wait_seconds: Longest a caller may block waiting for a refill.
        clock: Monotonic time source.
        sleep: Sleep function (both injectable for tests).
    """

    def __init__(
        self,
        tokens: int = 20,
        window_seconds: float = 60.0,
        max_wait_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.capacity = tokens
        self.window_seconds = window_seconds
        self.max_wait_seconds = max_wait_seconds
        self._clock = clock
        self._sleep = sleep
        self._tokens = tokens
        self._last_refill = clock()
        self._lock = threading.Lock()

    @property
    def available(self) -> int:
        with self._lock:
            self._refill(self._clock())
            return self._tokens

    def _refill(self, now: float) -> None:
        if now - self._last_refill >= self.window_seconds:
            self._tokens = self.capacity
            self._last_refill = now

    def acquire(self) -> None:
        """Take one token, waiting for the next refill if needed.

        Callers sleep without holding the lock and re-check after waking, so
        concurrent waiters never block longer than max_wait_seconds in total.

        Raises:
            RateLimitedError: If no token can be had within max_wait_seconds.
        """
        deadline = self._clock() + self.max_wait_seconds
        while True:
            with self._lock:
                now = self._clock()
                self._refill(now)
                if self._tokens > 0:
                    self._tokens -= 1
                    return

                wait = max(0.0, self.window_seconds - (now - self._last_refill))
                if now + wait > deadline:
                    logger.warning(
                        "LLM request gate exhausted",
                        extra={"extra_fields": {"wait_seconds": round(wait, 2)}},
                    )
                    raise RateLimitedError(
                        "RequestGate",
                        "Local LLM request budget exhausted",
                        details={"wait_seconds": round(wait, 2)},
                        retry_after_ms=int(wait * 1000),
                    )

            self._sleep(wait)


class BackoffTracker:
    """Remembers a provider-imposed "retry after" deadline."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._next_retry_at = 0.0

    def set_backoff(self, seconds: float) -> None:
        self._next_retry_at = self._clock() + seconds

    def can_proceed(self) -> bool:
        return self._clock() >= self._next_retry_at

    @property
    def delay_remaining(self) -> float:
        return max(0.0, self._next_retry_at - self._clock())


def parse_retry_after_seconds(error: Any) -> Optional[float]:
    """Extract a retry hint (seconds) from a provider error.

    Looks at the Retry-After / retry-after-ms response headers first, then at
    well-known phrases in the error message. Hints are floored at one second.

    Returns:
        Seconds to wait, or None if the error carries no hint.
    """
    seconds = None

    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers:
        try:
            if headers.get("retry-after-ms"):
                seconds = float(headers.get("retry-after-ms")) / 1000
            elif headers.get("retry-after"):
                seconds = float(headers.get("retry-after"))
        except (TypeError, ValueError):
            seconds = None

    if seconds is None:
        message = str(getattr(error, "message", None) or error)
        for pattern in _RETRY_MESSAGE_PATTERNS:
            match = pattern.search(message)
            if match:
                try:
                    seconds = float(match.group(1))
                except ValueError:
                    continue
                break

    if seconds is None:
        return None
    return max(MIN_RETRY_SECONDS, seconds)


def get_client_ip(request) -> str:
    """Client IP from proxy headers, falling back to the socket peer."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
        if ip:
            return ip

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"
