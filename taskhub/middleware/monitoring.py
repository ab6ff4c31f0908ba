# taskhub/middleware/monitoring.py
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import Counter, Histogram, Gauge
import time
from typing import Callable

# HTTP totals come from prometheus-fastapi-instrumentator; these cover the
# task API specifically
TASK_API_REQUESTS = Counter(
    'taskhub_task_api_requests_total',
    'Requests to the task and user APIs by route and outcome',
    ['method', 'route', 'outcome']
)

TASK_API_DURATION = Histogram(
    'taskhub_task_api_request_duration_seconds',
    'Task and user API request duration',
    ['method', 'route']
)

ACTIVE_REQUESTS = Gauge(
    'taskhub_requests_active',
    'Requests currently in flight'
)

MONITORED_PREFIXES = ("/api/v1/tasks", "/api/v1/users", "/api/v1/profile")


def outcome_for(status_code: int) -> str:
    if status_code < 400:
        return "ok"
    if status_code in (401, 403):
        return "denied"
    if status_code == 404:
        return "not_found"
    if status_code < 500:
        return "rejected"
    return "error"


class MonitoringMiddleware(BaseHTTPMiddleware):
    """
    Prometheus metrics for the task, user and profile routes
    """

    async def dispatch(self, request: Request, call_next: Callable):
        if not request.url.path.startswith(MONITORED_PREFIXES):
            return await call_next(request)

        method = request.method
        ACTIVE_REQUESTS.inc()
        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            # Label by route template, not raw path
            route = request.scope.get("route")
            template = getattr(route, "path", "unmatched")
            TASK_API_REQUESTS.labels(method=method, route=template, outcome=outcome_for(status_code)).inc()
            TASK_API_DURATION.labels(method=method, route=template).observe(time.time() - start_time)
            ACTIVE_REQUESTS.dec()
