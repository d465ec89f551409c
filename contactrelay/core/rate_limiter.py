"""
Per-client fixed-window rate limiter
"""
import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from contactrelay.config import RateLimitConfig
from contactrelay.errors import RateLimitError


@dataclass
class ClientRateState:
    """Counter for one client IP"""

    request_count: int
    window_start: float
    last_seen: float
    blocked_until: Optional[float] = None


class RateLimiter:
    """In-memory rate limiter keyed by client IP.

    Each IP gets ``max_requests`` per window. Exceeding the limit rejects the
    request and, when ``block_seconds`` is positive, blocks the IP until the
    block expires even if the window resets first. All access to the map goes
    through one lock, which the sweep shares.
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or RateLimitConfig()
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)

        self._clients: Dict[str, ClientRateState] = {}
        self._lock = threading.Lock()

        self._running = False
        self._sweep_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def allow(self, client_ip: str) -> None:
        """Count a request from client_ip

        Args:
            client_ip: Rate limiting key

        Raises:
            RateLimitError: If the client is blocked or over its limit
        """
        now = self.clock()
        window = self.config.window_seconds

        with self._lock:
            state = self._clients.get(client_ip)
            if state is None:
                self._clients[client_ip] = ClientRateState(
                    request_count=1, window_start=now, last_seen=now
                )
                return

            state.last_seen = now

            if state.blocked_until is not None:
                if now < state.blocked_until:
                    raise RateLimitError(retry_after=state.blocked_until - now)
                state.blocked_until = None

            if now - state.window_start > window:
                state.request_count = 1
                state.window_start = now
                return

            state.request_count += 1
            if state.request_count <= self.config.max_requests:
                return

            if self.config.block_seconds > 0:
                state.blocked_until = now + self.config.block_seconds
                retry_after = self.config.block_seconds
            else:
                retry_after = state.window_start + window - now

        self.logger.warning(
            "Rate limit exceeded for %s (%d requests in window)",
            client_ip,
            state.request_count,
        )
        raise RateLimitError(retry_after=retry_after)

    def sweep(self) -> int:
        """Drop clients idle for longer than the retention horizon

        Returns:
            Number of entries removed
        """
        cutoff = self.clock() - self.config.retention_seconds
        with self._lock:
            stale = [ip for ip, state in self._clients.items() if state.last_seen < cutoff]
            for ip in stale:
                del self._clients[ip]

        if stale:
            self.logger.debug("Rate limiter sweep removed %d entries", len(stale))
        return len(stale)

    def reset(self) -> None:
        """Forget every client"""
        with self._lock:
            self._clients.clear()

    async def start(self) -> None:
        """Start the periodic sweep"""
        if self._running:
            self.logger.warning("Rate limiter sweep already running")
            return

        self._running = True
        self._sweep_task = asyncio.create_task(self._sweep_loop())
        self.logger.info(
            "Rate limiter started: %d requests per %ss, block %ss",
            self.config.max_requests,
            self.config.window_seconds,
            self.config.block_seconds,
        )

    async def stop(self) -> None:
        """Stop the periodic sweep"""
        if not self._running:
            return

        self._running = False
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        self.logger.info("Rate limiter stopped")

    async def _sweep_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.config.sweep_interval_seconds)
                self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error(f"Error in rate limiter sweep: {e}", exc_info=True)
