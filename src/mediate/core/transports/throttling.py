"""
Rate limiting and throttling.

Provides an admission gate allowing at most ``limit`` requests per
``window`` seconds, shared by every caller of the same limiter, and the
transports that put it in front of an inner transport.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque
from datetime import timedelta
from enum import Enum
from typing import Any, Callable

import httpx

from .base import (
    AsyncTransportDecorator,
    RequestCancelled,
    TransportDecorator,
    attach_cancel_signal,
)

logger = logging.getLogger(__name__)


# Seconds between cancel checks in asyncio waits
CANCEL_POLL_INTERVAL = 0.05


class RateLimitStrategy(str, Enum):
    """Admission strategies."""

    # At most `limit` admissions in any rolling interval of `window`
    SLIDING_WINDOW = "sliding_window"
    # One admission every `window / limit`, on a grid starting at construction
    LEAKY_BUCKET = "leaky_bucket"


def _seconds(window: float | timedelta) -> float:
    if isinstance(window, timedelta):
        return window.total_seconds()
    return float(window)


class RateLimiter:
    """Thread-safe admission gate.

    Each caller reserves an admission slot under a lock, then sleeps until
    that slot outside the lock. Permits are consumed at admission and
    replenished only by the clock; a slow or failing request never holds
    one. Slots are handed out in arrival order.

    Features:
    - Sliding-window or leaky-bucket admission
    - Blocking (acquire) and asyncio (aacquire) waits on the same state
    - Waits preempted by a cancellation event
    """

    def __init__(
        self,
        limit: int,
        window: float | timedelta,
        *,
        strategy: RateLimitStrategy | str = RateLimitStrategy.SLIDING_WINDOW,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize rate limiter.

        Args:
            limit: Permits per window (>= 1)
            window: Window length in seconds or as a timedelta (> 0)
            strategy: Admission strategy
            clock: Monotonic clock returning seconds
            sleep: Blocking sleep used by acquire when no cancel event is given
        """
        window_seconds = _seconds(window)
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        if window_seconds <= 0:
            raise ValueError(f"window must be positive, got {window_seconds}")

        self.limit = limit
        self.window = window_seconds
        self.strategy = RateLimitStrategy(strategy)
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

        # Sliding window: the last `limit` admission slots, oldest first
        self._slots: deque[float] = deque(maxlen=limit)
        # Leaky bucket: next free tick
        self._interval = window_seconds / limit
        self._next_tick = clock() + self._interval

        self._admitted = 0
        self._total_wait = 0.0

    def _reserve(self) -> float:
        """Reserve the next admission slot and return seconds until it."""
        with self._lock:
            now = self._clock()

            if self.strategy is RateLimitStrategy.LEAKY_BUCKET:
                slot = max(self._next_tick, now)
                self._next_tick = slot + self._interval
            else:
                if len(self._slots) < self.limit:
                    slot = now
                else:
                    # Wait until the oldest of the last `limit` admissions ages out
                    slot = max(now, self._slots[0] + self.window)
                self._slots.append(slot)

            wait = slot - now
            self._admitted += 1
            self._total_wait += wait
            return wait

    def acquire(self, cancel: threading.Event | None = None) -> float:
        """Block until a permit is available.

        Args:
            cancel: Event that aborts the wait when set

        Returns:
            Seconds spent waiting

        Raises:
            RequestCancelled: If cancel is set before admission
        """
        if cancel is not None and cancel.is_set():
            raise RequestCancelled("Cancelled before rate limit admission")

        wait = self._reserve()
        if wait > 0:
            logger.debug(f"Rate limited, waiting {wait:.3f}s for a permit")
            if cancel is None:
                self._sleep(wait)
            elif cancel.wait(wait):
                raise RequestCancelled("Cancelled while waiting for rate limit admission")
        return wait

    async def aacquire(self, cancel: threading.Event | None = None) -> float:
        """Asyncio form of acquire.

        A cancellation event is polled while waiting; cancelling the
        awaiting task also aborts the wait.
        """
        if cancel is not None and cancel.is_set():
            raise RequestCancelled("Cancelled before rate limit admission")

        wait = self._reserve()
        if wait > 0:
            logger.debug(f"Rate limited, waiting {wait:.3f}s for a permit")
            if cancel is None:
                await asyncio.sleep(wait)
            else:
                deadline = self._clock() + wait
                remaining = wait
                while remaining > 0:
                    if cancel.is_set():
                        break
                    await asyncio.sleep(min(remaining, CANCEL_POLL_INTERVAL))
                    remaining = deadline - self._clock()
                if cancel.is_set():
                    raise RequestCancelled("Cancelled while waiting for rate limit admission")
        return wait

    def stats(self) -> dict[str, Any]:
        """Get rate limiter statistics."""
        with self._lock:
            return {
                "limit": self.limit,
                "window_seconds": self.window,
                "strategy": self.strategy.value,
                "admitted": self._admitted,
                "total_wait_seconds": self._total_wait,
            }


def _resolve_limiter(
    limit: int | None,
    window: float | timedelta | None,
    strategy: RateLimitStrategy | str | None,
    limiter: RateLimiter | None,
) -> RateLimiter:
    """Return the limiter a transport should use.

    With a shared limiter, limit, window and strategy may be omitted; when
    given they must agree with it.

    Raises:
        ValueError: If settings are missing or contradict the shared limiter
    """
    if limiter is None:
        if limit is None or window is None:
            raise ValueError("limit and window are required without a shared limiter")
        return RateLimiter(
            limit, window, strategy=strategy or RateLimitStrategy.SLIDING_WINDOW
        )

    if limit is not None and limit != limiter.limit:
        raise ValueError(f"limit={limit} disagrees with shared limiter (limit={limiter.limit})")
    if window is not None and _seconds(window) != limiter.window:
        raise ValueError(
            f"window={_seconds(window)}s disagrees with shared limiter "
            f"(window={limiter.window}s)"
        )
    if strategy is not None and RateLimitStrategy(strategy) is not limiter.strategy:
        raise ValueError(
            f"strategy={RateLimitStrategy(strategy).value} disagrees with shared limiter "
            f"(strategy={limiter.strategy.value})"
        )
    return limiter


class RateLimitedTransport(TransportDecorator):
    """Wrapper that adds rate limiting to any transport.

    Usage:
        transport = RateLimitedTransport(100, 1.0, httpx.HTTPTransport())
        with httpx.Client(transport=transport) as client:
            client.get("https://example.com")

        # Two pipelines behind one admission gate
        gate = RateLimiter(10, 1.0)
        first = RateLimitedTransport(inner=a, limiter=gate)
        second = RateLimitedTransport(inner=b, limiter=gate)
    """

    layer = "rate_limit"

    def __init__(
        self,
        limit: int | None = None,
        window: float | timedelta | None = None,
        inner: httpx.BaseTransport | None = None,
        *,
        strategy: RateLimitStrategy | str | None = None,
        limiter: RateLimiter | None = None,
        default_factory: Callable[[], httpx.BaseTransport] = httpx.HTTPTransport,
    ):
        """Initialize the rate limited transport.

        Args:
            limit: Requests permitted per window (optional with a shared limiter)
            window: Window length in seconds or as a timedelta (optional with
                a shared limiter)
            inner: Transport to wrap (default: default_factory())
            strategy: Admission strategy (default: sliding window)
            limiter: Existing limiter to share instead of creating one
            default_factory: Builds the inner transport when none is given

        Raises:
            ValueError: If settings are missing or disagree with limiter
        """
        self.limiter = _resolve_limiter(limit, window, strategy, limiter)
        super().__init__(inner, default_factory=default_factory)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        # Attached on entry so a cancel forwarded during the wait preempts it
        self.limiter.acquire(attach_cancel_signal(request))
        return self._inner.handle_request(request)


class AsyncRateLimitedTransport(AsyncTransportDecorator):
    """Asyncio form of RateLimitedTransport."""

    layer = "rate_limit"

    def __init__(
        self,
        limit: int | None = None,
        window: float | timedelta | None = None,
        inner: httpx.AsyncBaseTransport | None = None,
        *,
        strategy: RateLimitStrategy | str | None = None,
        limiter: RateLimiter | None = None,
        default_factory: Callable[[], httpx.AsyncBaseTransport] = httpx.AsyncHTTPTransport,
    ):
        self.limiter = _resolve_limiter(limit, window, strategy, limiter)
        super().__init__(inner, default_factory=default_factory)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await self.limiter.aacquire(attach_cancel_signal(request))
        return await self._inner.handle_async_request(request)
