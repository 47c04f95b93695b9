"""
Custom exceptions for the Talent Sonar backend.

Every error a service raises on purpose is an AppError. Each subclass fixes the
error code and the user-facing message; the internal message and details are
for logs only. The API layer maps codes to HTTP statuses (see HTTP_STATUS_BY_CODE).
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def new_debug_id() -> str:
    return f"dbg_{uuid.uuid4().hex[:12]}"


class AppError(Exception):
    """Base class for operational errors."""

    code = "UNKNOWN"
    user_message = "Unexpected error. Please try again."
    retryable = False

    def __init__(
        self,
        service: str,
        internal_message: str = "",
        details: Optional[Dict[str, Any]] = None,
        retry_after_ms: Optional[int] = None,
        message: Optional[str] = None,
    ):
        self.service = service
        self.internal_message = internal_message
        self.message = message or self.user_message
        self.details = {"service": service, **(details or {})}
        self.retry_after_ms = retry_after_ms
        self.debug_id = new_debug_id()
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(f"[{self.code}] {service}: {internal_message or self.message}")

    def to_dict(self) -> Dict[str, Any]:
        """Render the error as an API response body."""
        body: Dict[str, Any] = {
            "ok": False,
            "error_code": self.code,
            "message": self.message,
            "debug_id": self.debug_id,
        }
        if self.retry_after_ms is not None:
            body["retry_after_ms"] = self.retry_after_ms
        return body


class NotConfiguredError(AppError):
    """A feature needs configuration that is missing (API key, table, ...)."""

    code = "NOT_CONFIGURED"
    user_message = "This feature is not configured yet."


class UpstreamError(AppError):
    """A required upstream service failed or returned garbage."""

    code = "UPSTREAM"
    user_message = "A required service is temporarily unavailable. Please try again."
    retryable = True


class NetworkError(AppError):
    code = "NETWORK"
    user_message = "Network error. Check your connection and try again."
    retryable = True


class RateLimitedError(AppError):
    code = "RATE_LIMITED"
    user_message = "Rate limited. Please wait a moment and try again."
    retryable = True


class InvalidInputError(AppError):
    """The caller sent something we cannot work with.

    Unlike the other errors, the message is shown to the user as-is.
    """

    code = "VALIDATION"

    def __init__(self, service: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(service, message, details=details, message=message)


class ForbiddenError(AppError):
    code = "FORBIDDEN"
    user_message = "You do not have permission to perform this action."


class NotFoundError(AppError):
    code = "NOT_FOUND"

    def __init__(self, service: str, entity_type: str, entity_id: str):
        super().__init__(
            service,
            f"{entity_type} '{entity_id}' not found",
            details={"entity_type": entity_type, "entity_id": entity_id},
            message=f"{entity_type} with ID '{entity_id}' not found",
        )


HTTP_STATUS_BY_CODE = {
    "NOT_CONFIGURED": 503,
    "UPSTREAM": 502,
    "NETWORK": 503,
    "RATE_LIMITED": 429,
    "VALIDATION": 400,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "UNKNOWN": 500,
}
