"""
Error Types and Handlers
========================

Application errors carry an HTTP status and a stable machine-readable code.
Every error response has the same body:

    {"error": {"code": "...", "message": "...", "details": ...}}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None, code: Optional[str] = None):
        self.message = message or self.default_message
        self.details = details
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Not authorized"


class NotFoundOrForbidden(AppError):
    """Missing and out-of-scope records are reported identically."""
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class NotReady(AppError):
    status_code = 409
    code = "not_ready"
    default_message = "Report is not ready"


class PayloadTooLarge(AppError):
    status_code = 413
    code = "payload_too_large"
    default_message = "Payload too large"


class UpstreamFailure(AppError):
    """Blob store or renderer failure in a synchronous flow"""
    status_code = 502
    code = "upstream_failure"
    default_message = "Storage backend failure"


class ServerError(AppError):
    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"


# =============================================================================
# Error Handlers
# =============================================================================

def _sanitize_error_detail(detail: Any) -> Any:
    if detail is None:
        return None
    if isinstance(detail, str):
        compact = " ".join(detail.split())
        return compact[:300]
    return detail


def _error_code_for_status(status_code: int) -> str:
    return {
        400: "validation_error",
        401: "unauthenticated",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        413: "payload_too_large",
        429: "rate_limited",
        500: "internal_error",
    }.get(status_code, "error")


def build_error_payload(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
        }
    }


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_payload(exc.code, exc.message, exc.details),
    )


async def http_error_handler(request: Request, exc: HTTPException):
    """Routing errors (404/405) and any stray HTTPException."""
    detail = _sanitize_error_detail(exc.detail)
    message = detail if isinstance(detail, str) and detail else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_payload(_error_code_for_status(exc.status_code), message),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Return structured validation errors without leaking inputs."""
    sanitized_errors = [
        {"loc": err.get("loc"), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    first = sanitized_errors[0] if sanitized_errors else None
    message = "Invalid input"
    if first and first.get("loc"):
        field = ".".join(str(part) for part in first["loc"] if part not in ("body", "query", "path"))
        if field:
            message = f"Invalid input: {field}: {first.get('msg')}"
    return JSONResponse(
        status_code=400,
        content=build_error_payload("validation_error", message, {"errors": sanitized_errors}),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s: %s", request.url.path, exc.__class__.__name__, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=build_error_payload("internal_error", "Internal server error"),
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler - always return valid JSON"""
    logger.error("Unhandled exception on %s: %s", request.url.path, exc.__class__.__name__, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=build_error_payload("internal_error", "Internal server error"),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
