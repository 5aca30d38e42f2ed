"""
Rate limiting middleware for FastAPI endpoints.
Prevents abuse of the submission endpoint, which is the only path that can
trigger a paid model call.
"""

import time
import logging
from typing import Dict, Iterable, Optional, Tuple
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from collections import defaultdict

from ..config import settings

logger = logging.getLogger(__name__)

# Only submissions reach the model; reads stay unthrottled
DEFAULT_LIMITED_ROUTES = (("POST", "/api/feedback"),)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiter based on IP address."""

    def __init__(self, app, limited_routes: Optional[Iterable[Tuple[str, str]]] = None):
        super().__init__(app)
        self.requests: Dict[str, list] = defaultdict(list)
        self.limited_routes = {
            (method.upper(), path.rstrip("/") or "/")
            for method, path in (limited_routes or DEFAULT_LIMITED_ROUTES)
        }

        logger.info(f"Rate limiter initialized: {settings.rate_limit_requests} req/{settings.rate_limit_window_seconds}s")

    def is_limited(self, request: Request) -> bool:
        path = request.url.path.rstrip("/") or "/"
        return (request.method.upper(), path) in self.limited_routes

    async def dispatch(self, request: Request, call_next):
        """Process request with rate limiting."""
        # Limits are read per request so they can be changed at runtime
        max_requests = settings.rate_limit_requests
        window_seconds = settings.rate_limit_window_seconds

        if not settings.rate_limit_enabled or not self.is_limited(request):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"

        current_time = time.time()
        cutoff_time = current_time - window_seconds

        # Remove expired entries
        self.requests[client_ip] = [
            timestamp for timestamp in self.requests[client_ip]
            if timestamp > cutoff_time
        ]

        if len(self.requests[client_ip]) >= max_requests:
            logger.warning(f"Rate limit exceeded for {client_ip}: {len(self.requests[client_ip])} requests")
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": f"Rate limit exceeded. Max {max_requests} requests per {window_seconds} seconds."
                },
                headers={"Retry-After": str(window_seconds)}
            )

        self.requests[client_ip].append(current_time)

        response = await call_next(request)

        remaining = max_requests - len(self.requests[client_ip])
        response.headers["X-RateLimit-Limit"] = str(max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(int(self.requests[client_ip][0] + window_seconds))

        return response
