"""Response envelopes and the exception handlers that produce them.

Every body the API sends is one of:

    {"data": ...}
    {"error": {"code": "E_...", "message": "...", "request_id": "..."}}

Services raise ApiError subclasses. register_exception_handlers() installs
the handlers that turn those, framework errors (unknown routes, malformed
bodies) and unexpected exceptions into the error envelope.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from watchtogether.errors import ApiError, ApiErrorCode, UpstreamError
from watchtogether.logging import get_logger, get_request_id

logger = get_logger(__name__)

# Framework-raised statuses; everything domain-specific comes from ApiError
_HTTP_STATUS_CODES: dict[int, ApiErrorCode] = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    403: ApiErrorCode.E_FORBIDDEN,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_INVALID_REQUEST,
    422: ApiErrorCode.E_INVALID_REQUEST,
}

# Location prefixes FastAPI puts in front of the offending field
_LOCATION_ROOTS = ("body", "query", "path", "header")


def success_response(data: Any) -> dict[str, Any]:
    return {"data": data}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Build the error envelope.

    The request id defaults to the one bound by RequestIDMiddleware and is
    left out when there is none (e.g. outside a request).
    """
    if request_id is None:
        request_id = get_request_id()

    error = {"code": code.value, "message": message}
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def _error_json(status_code: int, code: ApiErrorCode, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(code, message))


def validation_message(exc: RequestValidationError) -> str:
    """One-line description of the first problem in a rejected request."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Request body is not valid JSON"

    field = ".".join(str(part) for part in first.get("loc", ()) if part not in _LOCATION_ROOTS)
    detail = first.get("msg") or "Invalid value"
    return f"{field}: {detail}" if field else detail


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        logger.warning(
            "upstream_error",
            code=exc.code.value,
            message=exc.message,
            upstream_status=exc.upstream_status,
        )
    elif exc.status_code >= 500:
        logger.warning("api_error", code=exc.code.value, message=exc.message)
    elif exc.status_code == 409:
        logger.info("api_conflict", code=exc.code.value)
    return _error_json(exc.status_code, exc.code, exc.message)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed JSON and schema mismatches are 400, never FastAPI's 422."""
    return _error_json(400, ApiErrorCode.E_INVALID_REQUEST, validation_message(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_STATUS_CODES.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    message = str(exc.detail) if exc.detail else "An error occurred"
    return _error_json(exc.status_code, code, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 with E_INTERNAL; the traceback is logged, never returned."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return _error_json(500, ApiErrorCode.E_INTERNAL, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
