"""Fixed-window request limiting per client address.

Counters live in process memory, so each worker process enforces its own
budget.
"""

import logging
import threading
import time
from typing import Any, Dict, Iterable, Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from groupbuy.api.exceptions import RateLimitExceededError
from groupbuy.api.responses import failure

# Configure module logger
logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    """Allows ``max_requests`` per client in each ``window_seconds`` window.

    Clients whose window has expired are dropped at most once per window,
    so the table only holds clients seen within the last two windows.
    """

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep: Optional[float] = None

    def hit(self, client: str, now: Optional[float] = None) -> int:
        """Count one request for ``client``.

        Returns:
            0 if the request is allowed, otherwise the seconds until the
            client's window resets.
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            self._sweep(now)
            started, count = self._windows.get(client, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[client] = (started, count)
            if count > self.max_requests:
                return max(1, int(started + self.window_seconds - now))
            return 0

    def _sweep(self, now: float) -> None:
        # Caller holds the lock
        if self._last_sweep is None:
            self._last_sweep = now
            return
        if now - self._last_sweep < self.window_seconds:
            return
        expired = [
            client
            for client, (started, _) in self._windows.items()
            if now - started >= self.window_seconds
        ]
        for client in expired:
            del self._windows[client]
        self._last_sweep = now
        if expired:
            logger.debug(f"Dropped {len(expired)} expired rate limit windows")

    @property
    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests over the limiter's budget with a 429 envelope."""

    def __init__(self, app: Any, limiter: FixedWindowRateLimiter, exempt_paths: Iterable[str] = ()):
        super().__init__(app)
        self.limiter = limiter
        self.exempt_paths = set(exempt_paths)

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        retry_after = self.limiter.hit(client)
        if retry_after:
            logger.warning(
                "Rate limit exceeded",
                extra={"client_host": client, "path": str(request.url.path)},
            )
            exc = RateLimitExceededError(retry_after)
            return failure(
                exc.message,
                exc.status_code,
                exc.error_code,
                exc.details,
                headers={"Retry-After": str(retry_after)},
                request_id=getattr(request.state, "request_id", None),
            )
        return await call_next(request)
