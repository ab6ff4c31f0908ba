# taskhub/middleware/rate_limiting.py
from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from loguru import logger

from taskhub.core.config import settings
from taskhub.core.tracing import get_current_trace_id

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.DEFAULT_RATE_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the same error shape as the other handlers, with Retry-After"""
    client_ip = get_remote_address(request)
    trace_id = get_current_trace_id()

    logger.warning(f"Rate limit exceeded | ip={client_ip} | path={request.url.path} | limit={exc.detail}")

    headers = {"X-Trace-ID": trace_id}
    retry_after = getattr(exc, "retry_after", None)
    if retry_after:
        headers["Retry-After"] = str(retry_after)

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": f"Rate limit exceeded: {exc.detail}",
            "status_code": status.HTTP_429_TOO_MANY_REQUESTS,
            "trace_id": trace_id,
            "path": str(request.url.path)
        },
        headers=headers
    )
