"""Admission gate for the generation API.

Each client identity gets a sliding window of recent request timestamps.
A request is admitted while the window holds fewer than ``max_requests``
entries; otherwise it is rejected at once (never queued). A background
sweep drops windows that have gone empty so churned identities do not
accumulate.
"""

import asyncio
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from recruiter.app.core.logging import get_log_context, get_logger
from recruiter.app.exceptions import RateLimitExceededError

logger = get_logger(__name__)


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # Seconds until the oldest tracked request leaves the window
    retry_after: Optional[int] = None


class AdmissionGate:
    """Per-identity sliding-window rate limiter.

    The read-modify-write of a window happens under one ``asyncio.Lock``
    with no await inside, so concurrent checks from the same identity can
    never admit more than ``max_requests`` within a window.

    Usage:
        gate = AdmissionGate(max_requests=10, window_seconds=60)
        await gate.start()          # periodic sweep
        if not await gate.admit(client_ip):
            ...                     # reply 429
        await gate.stop()
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        sweep_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the gate.

        Args:
            max_requests: Requests allowed per identity within the window
            window_seconds: Length of the trailing window
            sweep_interval: Seconds between background sweeps
            clock: Monotonic time source, replaceable in tests
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._windows: Dict[str, Deque[float]] = {}
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def tracked_identities(self) -> int:
        return len(self._windows)

    def _prune(self, window: Deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while window and window[0] <= cutoff:
            window.popleft()

    async def check(self, identity: str) -> RateLimitResult:
        """Record a request for ``identity`` if it fits in the window."""
        async with self._lock:
            now = self._clock()
            window = self._windows.get(identity)
            if window is None:
                window = self._windows[identity] = deque()
            self._prune(window, now)

            if len(window) >= self.max_requests:
                wait = max(1, math.ceil(window[0] + self.window_seconds - now))
                return RateLimitResult(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_after=wait,
                    retry_after=wait,
                )

            window.append(now)
            return RateLimitResult(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - len(window),
                reset_after=math.ceil(window[0] + self.window_seconds - now),
            )

    async def admit(self, identity: str) -> bool:
        return (await self.check(identity)).allowed

    async def sweep(self) -> int:
        """Prune every window and forget identities left empty.

        The lock is taken per identity, so admission checks interleave with
        a long sweep. Returns the number of identities removed.
        """
        removed = 0
        for identity in list(self._windows):
            async with self._lock:
                window = self._windows.get(identity)
                if window is None:
                    continue
                self._prune(window, self._clock())
                if not window:
                    del self._windows[identity]
                    removed += 1
            await asyncio.sleep(0)

        if removed:
            logger.debug(f"Rate limit sweep removed {removed} idle identities")
        return removed

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._task is not None:
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_sweeps())
        logger.info(f"Started rate limit sweep (interval: {self.sweep_interval}s)")

    async def stop(self) -> None:
        """Stop the periodic sweep task."""
        if self._task is None:
            return

        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Rate limit sweep did not stop gracefully, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            logger.info("Stopped rate limit sweep")

    async def _run_sweeps(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.sweep_interval)
            except asyncio.TimeoutError:
                pass
            else:
                break

            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Error during rate limit sweep: {e}")


def get_client_identity(request: Request, trust_forwarded_for: bool = False) -> str:
    """Network identity used as the rate-limit key."""
    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply an ``AdmissionGate`` to requests under ``path_prefix``."""

    def __init__(
        self,
        app,
        gate: AdmissionGate,
        path_prefix: str = "/api",
        trust_forwarded_for: bool = False,
    ):
        super().__init__(app)
        self.gate = gate
        self.path_prefix = path_prefix
        self.trust_forwarded_for = trust_forwarded_for

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        identity = get_client_identity(request, self.trust_forwarded_for)
        result = await self.gate.check(identity)

        if not result.allowed:
            exc = RateLimitExceededError(
                limit=result.limit,
                window_seconds=self.gate.window_seconds,
                retry_after=result.retry_after or 1,
            )
            logger.info(
                "Rate limit exceeded",
                extra=get_log_context(
                    request_id=getattr(request.state, "request_id", None),
                    client_id=identity,
                    path=request.url.path,
                ),
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": exc.error_code,
                    "message": exc.public_message,
                    "retry_after": exc.retry_after,
                },
                headers={
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(result.reset_after),
                    "Retry-After": str(exc.retry_after),
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        response.headers["X-RateLimit-Reset"] = str(result.reset_after)

        return response
