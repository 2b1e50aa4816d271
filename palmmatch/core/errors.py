"""Error taxonomy and FastAPI handlers."""

import logging
import builtins
from typing import Optional
from uuid import uuid4

from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from palmmatch.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    code = "app_error"
    status_code = 500
    user_message: Optional[str] = None

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class CodeNotFoundError(NotFoundError):
    """Compatibility code was never issued (or was swept)."""
    user_message = "Code not recognized. Double-check it and try again."


class InvalidCodeError(NotFoundError):
    """No invitation carries this invite code."""
    code = "invalid_code"
    user_message = "That invitation code was not recognized."


class ExpiredError(AppError):
    code = "expired"
    status_code = 410
    user_message = "This code is no longer valid."


class CodeExpiredError(ExpiredError):
    pass


class InvitationExpiredError(ExpiredError):
    user_message = "This invitation has expired. Ask for a new one."


class AlreadyUsedError(AppError):
    code = "already_used"
    status_code = 409
    user_message = "This invitation has already been used."


class NotReadyError(AppError):
    code = "not_ready"
    status_code = 409
    user_message = "This match is not ready to share yet."


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class CodeCollisionError(ConflictError):
    """Generated code already exists in the store."""


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


class DurableStoreUnavailable(AppError):
    """Durable store timed out or failed.

    Issue/resolve recover via the local cache; lifecycle transitions surface it.
    """
    code = "durable_store_unavailable"
    status_code = 503
    user_message = "We couldn't reach our servers. Please try again."
    retry_after_seconds = 5


_HTTP_ERROR_CODES = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def _extract_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    *,
    user_message: Optional[str] = None,
    request_id: Optional[str] = None,
    errors: Optional[list] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Every error leaves the API in this one shape, with x-request-id echoed."""
    rid = request_id or _extract_request_id(request)
    error = {"code": code, "message": message, "request_id": rid}
    if user_message:
        error["user_message"] = user_message
    content = {"error": error, "detail": message}
    if errors is not None:
        content["errors"] = errors

    logger.log(
        logging.ERROR if status_code >= 500 else logging.WARNING,
        "api.error",
        extra={"request_id": rid, "error_code": code, "status": status_code, "path": request.url.path},
    )
    response = JSONResponse(status_code=status_code, content=content, headers=headers)
    response.headers["x-request-id"] = rid
    return response


async def app_error_handler(request: Request, exc: AppError):
    headers = None
    if isinstance(exc, DurableStoreUnavailable):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return _error_response(
        request,
        exc.status_code,
        exc.code,
        exc.message,
        user_message=exc.user_message,
        request_id=exc.request_id,
        headers=headers,
    )


async def http_error_handler(request: Request, exc: HTTPException):
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "HTTP error"
    return _error_response(request, exc.status_code, code, message, headers=getattr(exc, "headers", None))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]
    return _error_response(request, 422, "validation_error", "Request validation failed", errors=errors)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": _extract_request_id(request)})
    return _error_response(request, 500, "internal_error", "Unexpected error")
