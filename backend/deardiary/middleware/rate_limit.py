"""
Dear Diary Backend — Rate Limiting Middleware
===============================================

What:  Per-IP sliding window rate limiter.
How:   Each IP keeps a list of request timestamps per bucket. On each
       request, timestamps older than the window are dropped; if the
       remaining count has reached the bucket's limit, the request is
       answered 429 with Retry-After, otherwise it is recorded and passed on.

Buckets:
    auth     POST /api/auth/login and /api/auth/register: a tight limit,
             since every attempt costs a bcrypt verification and is a
             password guess
    general  every other path except /health and the API docs

    State is in process memory; a multi-worker deployment gets one limiter
    per worker.
    Only clients with a request inside the current window keep an entry; a
    sweep once per window drops everyone else.
"""

import logging
import time
from typing import Dict, List, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from deardiary.config import settings
from deardiary.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        max_requests: general bucket limit per window (default from settings)
        auth_max_requests: auth bucket limit per window (default from settings)
        window_seconds: window length (default from settings)
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
    AUTH_PATHS = {"/api/auth/login", "/api/auth/register"}

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        auth_max_requests: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        super().__init__(app)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.auth_max_requests = auth_max_requests or settings.auth_rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window
        self._requests: Dict[Tuple[str, str], List[float]] = {}
        self._last_sweep = time.time()

    def _bucket(self, request: Request) -> Tuple[str, int]:
        if request.method == "POST" and request.url.path in self.AUTH_PATHS:
            return "auth", self.auth_max_requests
        return "general", self.max_requests

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket, limit = self._bucket(request)
        key = (bucket, client_ip)

        now = time.time()
        window_start = now - self.window_seconds
        timestamps = [ts for ts in self._requests.get(key, ()) if ts > window_start]

        if now - self._last_sweep >= self.window_seconds:
            self._cleanup_inactive(window_start)
            self._last_sweep = now

        if len(timestamps) >= limit:
            self._requests[key] = timestamps
            oldest = timestamps[0]
            retry_after = int(oldest + self.window_seconds - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s (%s bucket): %d requests in %ds window",
                client_ip,
                bucket,
                len(timestamps),
                self.window_seconds,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": {"retry_after": retry_after},
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)
        self._requests[key] = timestamps

        return await call_next(request)

    def _cleanup_inactive(self, window_start: float) -> None:
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Cleaned up %d inactive rate limit entries", len(inactive))
