"""
Fixed retry transport with tenacity.

Re-issues a request up to a fixed number of attempts, immediately and
without backoff, returning the first successful response. When every
attempt fails the exception from the last attempt is re-raised.
"""

from __future__ import annotations

import logging
from typing import Callable

import httpx
from tenacity import (
    AsyncRetrying,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_none,
)

from .base import (
    AsyncTransportDecorator,
    NoAttemptsError,
    RequestCancelled,
    TransportDecorator,
    attach_cancel_signal,
)
from .cloning import _buffered_content, abuffer_request, buffer_request, clone_request

logger = logging.getLogger(__name__)


DEFAULT_ATTEMPTS = 3


def _check_attempts(attempts: int) -> int:
    if attempts <= 0:
        raise NoAttemptsError(attempts)
    return attempts


class _RetryPolicy:
    """Shared configuration for the sync and async retry transports."""

    layer = "fixed_retry"

    def _configure(
        self,
        attempts: int,
        retry_on: tuple[type[BaseException], ...],
        buffer_request_body: bool,
    ) -> None:
        self.attempts = _check_attempts(attempts)
        self.retry_on = retry_on
        self.buffer_request_body = buffer_request_body

    def _retrying_kwargs(self) -> dict:
        return {
            "stop": stop_after_attempt(self.attempts),
            "wait": wait_none(),
            "retry": (
                retry_if_exception_type(self.retry_on)
                & retry_if_not_exception_type(RequestCancelled)
            ),
            "before_sleep": before_sleep_log(logger, logging.WARNING),
            "reraise": True,
        }

    def _needs_buffering(self, request: httpx.Request) -> bool:
        return (
            self.buffer_request_body
            and self.attempts > 1
            and _buffered_content(request) is None
        )


class FixedRetryTransport(_RetryPolicy, TransportDecorator):
    """Retries a failed exchange up to a fixed number of attempts.

    attempts is the total call budget: with attempts=3 the inner transport
    is called at most three times per request.

    Usage:
        transport = FixedRetryTransport(3, httpx.HTTPTransport())
        with httpx.Client(transport=transport) as client:
            client.get("https://example.com")
    """

    def __init__(
        self,
        attempts: int = DEFAULT_ATTEMPTS,
        inner: httpx.BaseTransport | None = None,
        *,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        buffer_request_body: bool = True,
        default_factory: Callable[[], httpx.BaseTransport] = httpx.HTTPTransport,
    ):
        """Initialize the retry transport.

        Args:
            attempts: Maximum number of calls to inner per request (>= 1)
            inner: Transport to wrap (default: default_factory())
            retry_on: Exception types that trigger another attempt
            buffer_request_body: Buffer an unread request body before the
                first attempt so each attempt can replay it
            default_factory: Builds the inner transport when none is given

        Raises:
            NoAttemptsError: If attempts is zero or negative
        """
        self._configure(attempts, retry_on, buffer_request_body)
        super().__init__(inner, default_factory=default_factory)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        # Attached before cloning so every attempt observes a later cancel
        attach_cancel_signal(request)
        original = buffer_request(request) if self._needs_buffering(request) else request

        for attempt in Retrying(**self._retrying_kwargs()):
            with attempt:
                number = attempt.retry_state.attempt_number
                logger.debug(
                    f"{request.method} {request.url} attempt {number}/{self.attempts}",
                    extra=self._log_context(request, attempt=number),
                )
                return self._inner.handle_request(clone_request(original))

        # Retrying either returns from the loop or re-raises the last error
        raise AssertionError("unreachable")


class AsyncFixedRetryTransport(_RetryPolicy, AsyncTransportDecorator):
    """Asyncio form of FixedRetryTransport."""

    def __init__(
        self,
        attempts: int = DEFAULT_ATTEMPTS,
        inner: httpx.AsyncBaseTransport | None = None,
        *,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        buffer_request_body: bool = True,
        default_factory: Callable[[], httpx.AsyncBaseTransport] = httpx.AsyncHTTPTransport,
    ):
        self._configure(attempts, retry_on, buffer_request_body)
        super().__init__(inner, default_factory=default_factory)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        attach_cancel_signal(request)
        if self._needs_buffering(request):
            original = await abuffer_request(request)
        else:
            original = request

        async for attempt in AsyncRetrying(**self._retrying_kwargs()):
            with attempt:
                number = attempt.retry_state.attempt_number
                logger.debug(
                    f"{request.method} {request.url} attempt {number}/{self.attempts}",
                    extra=self._log_context(request, attempt=number),
                )
                return await self._inner.handle_async_request(clone_request(original))

        raise AssertionError("unreachable")
