# taskhub/exceptions/handlers.py
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi.util import get_remote_address
from taskhub.core import tracing
import time


def get_safe_headers(request: Request) -> dict:
    """Extract and mask sensitive headers for logging"""
    headers = request.headers
    return {
        "user_agent": headers.get("user-agent", "unknown"),
        "authorization": (headers.get("authorization", "")[:10] + "...") if headers.get("authorization") else "none",
        "referer": headers.get("referer", "none")
    }


def _error_body(request: Request, status_code: int, detail) -> dict:
    return {
        "detail": detail,
        "status_code": status_code,
        "trace_id": tracing.get_current_trace_id(),
        "timestamp": time.time(),
        "path": request.url.path
    }


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    log = tracing.error if exc.status_code >= 500 else tracing.warning
    log(
        f"HTTP {exc.status_code}: {exc.detail}",
        url=str(request.url),
        ip=get_remote_address(request),
        **get_safe_headers(request)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail),
        headers=getattr(exc, 'headers', None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": " -> ".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        }
        for error in exc.errors()
    ]

    tracing.warning(
        f"Validation error: {len(errors)} errors",
        url=str(request.url),
        ip=get_remote_address(request),
        **get_safe_headers(request)
    )

    content = _error_body(request, 422, "Validation error")
    content["errors"] = errors
    return JSONResponse(status_code=422, content=content)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    tracing.exception(
        f"Unhandled exception: {exc}",
        exc,
        url=str(request.url),
        ip=get_remote_address(request),
        error_type=type(exc).__name__,
        **get_safe_headers(request)
    )

    return JSONResponse(
        status_code=500,
        content=_error_body(request, 500, "Internal server error")
    )


async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    tracing.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        url=str(request.url),
        ip=get_remote_address(request),
        **get_safe_headers(request)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail),
        headers=getattr(exc, 'headers', None)
    )
