"""
Request metrics for the marketplace API.

Every routed request is reported to a tracking callback with the route
template as its endpoint label, so marketplace ids (product, order,
demand) never become label values.
"""

import time
from typing import Callable, Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

UNMATCHED_ENDPOINT = "unmatched"


def endpoint_label(request: Request) -> str:
    """Route template, or a fixed label for paths no route matched."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED_ENDPOINT


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Reports method, endpoint, status and duration for each request.

    Paths listed in ``skip_paths`` (the scrape endpoint by default) are
    passed through untracked. A request that raises is reported with
    status 500 before the error propagates.
    """

    def __init__(self, app, track_func: Callable, skip_paths: Iterable[str] = ("/metrics",)):
        super().__init__(app)
        self.track_func = track_func
        self.skip_paths = frozenset(skip_paths)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.skip_paths:
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            self.track_func(
                method=request.method,
                endpoint=endpoint_label(request),
                status_code=status_code,
                duration=time.perf_counter() - started,
            )
