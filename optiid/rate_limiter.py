"""
Rate limiting for the allocation endpoint.

Every Allocate call costs a signature and up to ten registry probes, so
clients are throttled per IP with a sliding window. State is in-memory;
a deployment with several instances needs a shared store instead.
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, Request, status

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit rule."""

    max_requests: int
    window_seconds: int
    block_duration_seconds: int = 0  # 0 = no block beyond the window


@dataclass
class ClientState:
    """State tracking for a single client."""

    requests: list = field(default_factory=list)
    blocked_until: float = 0.0


class RateLimiter:
    """
    In-memory rate limiter with sliding window algorithm.

    Thread-safe for concurrent access.
    """

    def __init__(self, config: RateLimitConfig, clock: Callable[[], float] = time.time) -> None:
        self.config = config
        self._clock = clock
        self._clients: Dict[str, ClientState] = defaultdict(ClientState)
        self._lock = Lock()
        self._last_cleanup = clock()
        self._cleanup_interval = 60.0

    def _cleanup_old_entries(self, now: float) -> None:
        """Remove idle clients to bound memory."""
        if now - self._last_cleanup < self._cleanup_interval:
            return

        self._last_cleanup = now
        cutoff = now - self.config.window_seconds - self.config.block_duration_seconds
        expired = [
            client
            for client, state in self._clients.items()
            if (not state.requests or state.requests[-1] < cutoff) and state.blocked_until < now
        ]
        for client in expired:
            del self._clients[client]

    @staticmethod
    def client_key(request: Request) -> str:
        """Client IP, honouring X-Forwarded-For from a reverse proxy."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        if request.client:
            return request.client.host
        return "unknown"

    def check(self, client: str) -> Tuple[bool, Optional[int]]:
        """
        Record a request from ``client`` if it is within the limit.

        Returns:
            Tuple of (is_allowed, retry_after_seconds)
        """
        now = self._clock()

        with self._lock:
            self._cleanup_old_entries(now)
            state = self._clients[client]

            if state.blocked_until > now:
                return False, int(state.blocked_until - now) + 1

            window_start = now - self.config.window_seconds
            state.requests = [ts for ts in state.requests if ts > window_start]

            if len(state.requests) >= self.config.max_requests:
                if self.config.block_duration_seconds > 0:
                    state.blocked_until = now + self.config.block_duration_seconds
                    retry_after = self.config.block_duration_seconds
                else:
                    retry_after = int(state.requests[0] - window_start) + 1

                logger.warning(
                    "Rate limit exceeded",
                    client=client,
                    requests_in_window=len(state.requests),
                    retry_after_seconds=retry_after,
                )
                return False, retry_after

            state.requests.append(now)
            return True, None

    def reset(self) -> None:
        with self._lock:
            self._clients.clear()


allocate_rate_limiter = RateLimiter(
    RateLimitConfig(
        max_requests=settings.ALLOCATE_RATE_LIMIT_REQUESTS,
        window_seconds=settings.ALLOCATE_RATE_LIMIT_WINDOW_SECONDS,
    )
)


def check_allocate_rate_limit(request: Request) -> None:
    """
    FastAPI dependency enforcing the Allocate rate limit.

    Raises:
        HTTPException: 429 Too Many Requests if limit exceeded
    """
    is_allowed, retry_after = allocate_rate_limiter.check(RateLimiter.client_key(request))

    if not is_allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many allocation requests. Please try again later.",
            headers={"Retry-After": str(retry_after)},
        )
