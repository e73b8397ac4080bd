"""
Error taxonomy and the application-wide error envelope.

Every handled failure is an HTTPException subclass so routes and services can
raise them directly. Anything else reaching the top of the stack is an
internal error: logged with request context, reported to the caller as a
generic 500.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = structlog.get_logger()

ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_FAILED",
    500: "INTERNAL",
}


class Unauthorized(HTTPException):
    """Credential missing, unverifiable or expired. The client must re-authenticate."""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(
            status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"}
        )


class Forbidden(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=403, detail=detail)


class NotFound(HTTPException):
    """Missing, or outside the caller's visibility. The two are indistinguishable."""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=409, detail=detail)


class BadRequest(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=400, detail=detail)


def error_body(status: int, message: str) -> dict:
    return {
        "error": {
            "code": ERROR_CODES.get(status, "ERROR"),
            "message": message,
            "status": status,
        }
    }


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    body = error_body(422, "Request validation failed")
    body["error"]["details"] = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()
    ]
    return JSONResponse(status_code=422, content=body)


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    auth = getattr(request.state, "auth", None)
    log.exception(
        "request.internal_error",
        method=request.method,
        path=request.url.path,
        account_id=str(auth.account_id) if auth else None,
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=500, content=error_body(500, "Internal server error"))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
