"""Error taxonomy and the FastAPI handlers that render it.

Every user-visible failure carries a stable ``code``, a message and an
optional ``details`` payload.
"""

import logging
import traceback
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from childguard.core.config import settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details=None, status_code: int | None = None, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class ValidationError(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT"


class UpstreamUnavailable(ApiError):
    """Risk model service unreachable or returned something unusable."""

    status_code = 502
    code = "AI_MODEL_ERROR"


class PersistenceFailure(ApiError):
    status_code = 500
    code = "PERSISTENCE_FAILURE"


class ConfigError(ApiError):
    status_code = 500
    code = "CONFIG_ERROR"


def _envelope(status_code: int, code: str, message: str, details=None, exc: Exception | None = None):
    body = {
        "success": False,
        "status_code": status_code,
        "error": {"code": code, "message": message, "details": details},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if exc is not None and not settings.is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status_code, content=body)


async def _api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _envelope(exc.status_code, exc.code, exc.message, exc.details, exc if exc.status_code >= 500 else None)


async def _validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg")}
        for e in exc.errors()
    ]
    return _envelope(422, "VALIDATION_ERROR", "Validation failed", details)


async def _unhandled_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _envelope(500, "INTERNAL_ERROR", "Internal server error", None, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_handler)
    app.add_exception_handler(Exception, _unhandled_handler)
