"""
Request Logging Middleware.

Logs every HTTP request and response with structured fields, and sets the
request correlation id used by all log records emitted while handling it.
"""

import time
import uuid
from typing import Any

from fastapi import Request

from talentsonar.utils.logger import clear_correlation_ids, get_logger, set_correlation_id
from talentsonar.utils.rate_limiter import get_client_ip

logger = get_logger(__name__)


async def log_requests_middleware(request: Request, call_next: Any) -> Any:
    """Log the request, call the handler, log the response.

    The correlation id comes from X-Request-ID, then the AWS trace header, and
    is generated otherwise. It is echoed back in the X-Request-ID response
    header.
    """
    start_time = time.time()
    clear_correlation_ids()

    request_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Amzn-Trace-Id", "").split("=")[-1]
        or uuid.uuid4().hex
    )
    set_correlation_id(request_id=request_id)

    logger.info(
        "HTTP request",
        extra={
            "extra_fields": {
                "http_method": request.method,
                "http_path": request.url.path,
                "client_ip": get_client_ip(request),
                "user_agent": request.headers.get("User-Agent", ""),
            }
        },
    )

    response = await call_next(request)
    duration_ms = (time.time() - start_time) * 1000

    logger.info(
        "HTTP response",
        extra={
            "extra_fields": {
                "http_method": request.method,
                "http_path": request.url.path,
                "http_status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            }
        },
    )

    response.headers["X-Request-ID"] = request_id
    return response
