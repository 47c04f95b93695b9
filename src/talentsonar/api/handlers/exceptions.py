"""
Exception Handlers for FastAPI Application.

- RequestValidationError -> 422 with a per-field list
- AppError -> status from HTTP_STATUS_BY_CODE with the error's API body;
  rate limits also carry a Retry-After header
"""

import math

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from talentsonar.utils.exceptions import HTTP_STATUS_BY_CODE, AppError
from talentsonar.utils.logger import get_logger

logger = get_logger(__name__)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return which fields failed validation and why.

    Returns:
        JSONResponse with status 422 containing:
            - detail: list of {field, message, type}
            - message: user-friendly summary
    """
    error_details = [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.error(
        "Validation error",
        extra={
            "extra_fields": {
                "validation_errors": error_details,
                "http_path": request.url.path,
            }
        },
    )

    return JSONResponse(
        status_code=422,
        content={
            "detail": error_details,
            "message": "Validation error: Please check your input data",
        },
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as {ok: false, error_code, message, debug_id, retry_after_ms?}."""
    status_code = HTTP_STATUS_BY_CODE.get(exc.code, 500)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        f"Request failed: {exc.code}",
        extra={
            "extra_fields": {
                "error_code": exc.code,
                "service": exc.service,
                "internal_message": exc.internal_message,
                "details": exc.details,
                "debug_id": exc.debug_id,
                "http_path": request.url.path,
            }
        },
    )

    headers = None
    if exc.retry_after_ms is not None:
        headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after_ms / 1000)))}

    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)
