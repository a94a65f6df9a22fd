from typing import Any, Dict, Optional
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application error; the HTTP layer turns it into a structured response."""

    status_code = 500
    code = "APP_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details or {}


# Cluster client provider failures: fatal to the request, need operator action.

class ConfigNotFound(AppException):
    code = "CONFIG_NOT_FOUND"


class ConfigParseError(AppException):
    status_code = 400
    code = "CONFIG_PARSE_ERROR"


class NoActiveContext(AppException):
    code = "NO_ACTIVE_CONTEXT"


# Semantic errors the caller can correct.

class NotFound(AppException):
    status_code = 404
    code = "NOT_FOUND"


class AlreadyExists(AppException):
    status_code = 409
    code = "ALREADY_EXISTS"


class ValidationError(AppException):
    status_code = 400
    code = "VALIDATION_ERROR"


class UpstreamError(AppException):
    """Opaque control-plane failure, surfaced verbatim."""

    code = "UPSTREAM_ERROR"


class SettleTimeout(AppException):
    code = "SETTLE_TIMEOUT"


class ReplaceFailed(AppException):
    """A pod replacement stopped part-way.

    ``step`` is one of ``delete``, ``settle`` or ``create``; ``deleted`` tells
    whether the original pod is already gone.
    """

    code = "REPLACE_FAILED"

    def __init__(self, step: str, cause: AppException, *, deleted: bool) -> None:
        if deleted:
            state = "original pod was deleted and has not been recreated"
        else:
            state = "original pod was not deleted"
        super().__init__(
            f"Pod replacement failed at {step} step ({state}): {cause.message}",
            status_code=cause.status_code,
            details={
                "step": step,
                "deleted": deleted,
                "cause": cause.code,
                **({"cause_details": cause.details} if cause.details else {}),
            },
        )
        self.step = step
        self.deleted = deleted
        self.cause = cause


class AssistantNotConfigured(AppException):
    code = "ASSISTANT_NOT_CONFIGURED"


def error_payload(exc: AppException, request_id: Optional[str] = None) -> Dict[str, Any]:
    """Structured error body shared by every failure response."""
    error: Dict[str, Any] = {"message": exc.message, "code": exc.code}
    if exc.details:
        error["details"] = exc.details
    return {
        "success": False,
        "error": error,
        "request_id": request_id or str(uuid.uuid4()),
        "status_code": exc.status_code,
    }


def _respond(request: Request, exc: AppException) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc, request_id),
        headers={"X-Request-ID": request_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers that translate errors into status codes."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        logger.warning("HTTP %s on %s", exc.status_code, request.url.path)
        return _respond(request, AppException(message, status_code=exc.status_code, code="HTTP_ERROR"))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        errors = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
        logger.info("Invalid request on %s: %d error(s)", request.url.path, len(errors))
        return _respond(
            request,
            ValidationError("Request parameters are missing or invalid", details={"errors": errors}),
        )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):  # type: ignore[override]
        logger.warning("%s (%s) on %s: %s", exc.code, exc.status_code, request.url.path, exc.message)
        return _respond(request, exc)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger.exception("Unhandled error on %s", request.url.path)
        return _respond(request, AppException("Internal server error", code="INTERNAL_SERVER_ERROR"))
