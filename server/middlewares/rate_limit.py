from __future__ import annotations

import time
from collections import defaultdict, deque
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from estimator.schemas import ApiResponse

RATE_LIMIT_MESSAGE = "Too many requests. Please try again in a minute."


class EstimationRateLimitMiddleware(BaseHTTPMiddleware):
    """Ограничение POST-запросов к /api на клиента (по IP) в скользящем окне 60 с."""

    def __init__(self, app: ASGIApp, max_requests_per_minute: int = 20) -> None:
        super().__init__(app)
        self.max_requests = max_requests_per_minute
        self.client_calls: dict[str, deque[float]] = defaultdict(deque)
        self._last_sweep = 0.0

    def _evict_idle(self, now: float) -> None:
        """Удалить клиентов без вызовов за последнюю минуту; не чаще раза в минуту."""
        if now - self._last_sweep < 60:
            return
        self._last_sweep = now
        one_minute_ago = now - 60
        idle = [cid for cid, calls in self.client_calls.items() if not calls or calls[-1] < one_minute_ago]
        for cid in idle:
            del self.client_calls[cid]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.method != "POST" or not request.url.path.startswith("/api/"):
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        now = time.time()
        self._evict_idle(now)
        calls = self.client_calls[client_id]
        one_minute_ago = now - 60
        while calls and calls[0] < one_minute_ago:
            calls.popleft()

        if len(calls) >= self.max_requests:
            return JSONResponse(
                ApiResponse(success=False, error=RATE_LIMIT_MESSAGE).to_wire(),
                status_code=429,
                headers={"Retry-After": "60", "Access-Control-Allow-Origin": "*"},
            )

        calls.append(now)
        return await call_next(request)
