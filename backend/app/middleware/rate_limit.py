"""
MemoTap Backend — Rate Limiting Middleware
============================================

What:  Per-IP sliding window rate limiter.
How:   SlidingWindowLimiter keeps recent request timestamps per client in
       memory; RateLimitMiddleware consults it and answers 429 when full.
Who:   Applied to every request (first middleware to execute).

Every processed recording costs two Gemini calls against a shared key
pool, so one client hammering /api/recordings/process would exhaust the
quota of every user. The window bounds that.

Algorithm: sliding window log
    1. Drop timestamps older than `window` seconds
    2. If `limit` remain → reject, Retry-After = until the oldest expires
    3. Otherwise record now and allow

Single-process only: counters live in this worker's memory.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.config import settings
from app.exceptions import RateLimitExceededError
from app.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """
    Example:
        limiter = SlidingWindowLimiter(limit=2, window=60)
        limiter.hit("1.2.3.4", now=0)   # allowed
        limiter.hit("1.2.3.4", now=1)   # allowed
        limiter.hit("1.2.3.4", now=2)   # raises RateLimitExceededError(retry_after=59)
    """

    # Full sweep of idle clients every N recorded hits
    CLEANUP_EVERY = 1000

    def __init__(self, limit: int, window: int):
        self.limit = limit
        self.window = window
        self._hits: Dict[str, List[float]] = defaultdict(list)
        self._recorded = 0

    def hit(self, client: str, now: Optional[float] = None) -> None:
        """Record one request for `client` or raise RateLimitExceededError."""
        now = time.time() if now is None else now
        window_start = now - self.window

        recent = [ts for ts in self._hits[client] if ts > window_start]
        self._hits[client] = recent

        if len(recent) >= self.limit:
            retry_after = int(recent[0] + self.window - now) + 1
            raise RateLimitExceededError(
                retry_after=retry_after,
                context={"client": client, "requests_in_window": len(recent)},
            )

        recent.append(now)
        self._recorded += 1
        if self._recorded % self.CLEANUP_EVERY == 0:
            self._cleanup(window_start)

    def _cleanup(self, window_start: float) -> None:
        idle = [
            client for client, stamps in self._hits.items()
            if not stamps or stamps[-1] <= window_start
        ]
        for client in idle:
            del self._hits[client]
        if idle:
            logger.debug("Rate limiter dropped %d idle client(s)", len(idle))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects clients over `rate_limit_requests` per `rate_limit_window` seconds.

    Excluded: /health and the API docs, which must stay reachable.

    Middleware runs outside FastAPI's exception handlers, so the 429 body is
    built here in the same shape the handlers use.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, limit: Optional[int] = None, window: Optional[int] = None, **kwargs):
        super().__init__(app, **kwargs)
        self.limiter = SlidingWindowLimiter(
            limit=limit or settings.rate_limit_requests,
            window=window or settings.rate_limit_window,
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy's address
        client_ip = request.client.host if request.client else "unknown"

        try:
            self.limiter.hit(client_ip)
        except RateLimitExceededError as exc:
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                exc.context.get("requests_in_window", 0),
                self.limiter.window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": {"retry_after": exc.retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        return await call_next(request)
