"""
API error taxonomy and the single translator that turns failures into
JSON error payloads.

Every error response has the shape::

    {"code": "NOT_FOUND", "message": "Spot not found", "details": ...}

``details`` is only included outside production (or with DEBUG on).
"""
import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings

logger = logging.getLogger(__name__)


class APIError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class BadRequest(APIError):
    code = "BAD_REQUEST"
    status_code = 400
    default_message = "Bad request"


class Unauthorized(APIError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(APIError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Access denied"


class NotFound(APIError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Not found"


class InternalError(APIError):
    pass


class UpstreamError(APIError):
    """The places/geocoding provider failed or timed out."""
    status_code = 502
    default_message = "Upstream provider error"


STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
}


def error_response(status_code: int, code: str, message: str, details: Any = None) -> JSONResponse:
    body = {"code": code, "message": message}
    if details is not None and settings.expose_error_details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def field_errors(errors) -> list:
    """Flatten pydantic errors to ``[{"field": "body.name", "message": ...}]``."""
    out = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        out.append({"field": loc, "message": err.get("msg", "Invalid value")})
    return out


async def api_error_handler(request: Request, exc: APIError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def validation_error_handler(request: Request, exc):
    details = field_errors(exc.errors())
    fields = ", ".join(d["field"] for d in details)
    return error_response(400, "BAD_REQUEST", f"Invalid request: {fields}", details)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = STATUS_CODES.get(exc.status_code, "INTERNAL_ERROR" if exc.status_code >= 500 else "BAD_REQUEST")
    return error_response(exc.status_code, code, str(exc.detail))


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return error_response(500, "INTERNAL_ERROR", "Database unavailable", str(exc))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.expose_error_details else "An unexpected error occurred"
    return error_response(500, "INTERNAL_ERROR", message, repr(exc))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
