"""
Transport base classes and error types.

Defines the decorator contract shared by every mediate transport:
- an inner transport given at construction (or an explicit default)
- cancellation forwarding resolved once, at composition time
- the error taxonomy surfaced to callers
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Protocol, runtime_checkable

import httpx


CANCEL_EXTENSION = "mediate.cancel"


# =============================================================================
# Errors
# =============================================================================


class MediateError(Exception):
    """Base exception for transport decorator errors."""

    def __init__(
        self,
        message: str,
        request: httpx.Request | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.request = request
        self.cause = cause


class BodyReadError(MediateError):
    """Draining a response body into memory failed."""
    pass


class NoAttemptsError(MediateError, ValueError):
    """A retry transport was configured with no attempts permitted."""

    def __init__(self, attempts: int):
        super().__init__(f"No attempts permitted (attempts={attempts}); must be >= 1")
        self.attempts = attempts


class RequestCancelled(MediateError):
    """The request's cancellation signal fired."""
    pass


# =============================================================================
# Cancellation
# =============================================================================


@runtime_checkable
class Cancellable(Protocol):
    """A transport able to cancel an in-flight request."""

    def cancel_request(self, request: httpx.Request) -> None:
        ...


def attach_cancel_signal(
    request: httpx.Request,
    event: threading.Event | None = None,
) -> threading.Event:
    """Attach a cancellation signal to a request and return it.

    An existing signal is kept unless a new event is given explicitly.
    """
    if event is None:
        existing = request.extensions.get(CANCEL_EXTENSION)
        if isinstance(existing, threading.Event):
            return existing
        event = threading.Event()
    request.extensions[CANCEL_EXTENSION] = event
    return event


def get_cancel_signal(request: httpx.Request) -> threading.Event | None:
    """Return the request's cancellation signal, if it carries one."""
    event = request.extensions.get(CANCEL_EXTENSION)
    return event if isinstance(event, threading.Event) else None


def raise_if_cancelled(request: httpx.Request) -> None:
    event = get_cancel_signal(request)
    if event is not None and event.is_set():
        raise RequestCancelled("Request cancelled", request=request)


def _noop_cancel(request: httpx.Request) -> None:
    return None


# =============================================================================
# Decorator base classes
# =============================================================================


class _CancelForwarding:
    """Mixin resolving the inner transport's cancel capability once."""

    _inner: Any

    def _resolve_cancel(self) -> None:
        if isinstance(self._inner, Cancellable):
            self._cancel: Callable[[httpx.Request], None] = self._inner.cancel_request
        else:
            self._cancel = _noop_cancel

    @property
    def inner(self) -> Any:
        """The wrapped transport."""
        return self._inner

    @property
    def supports_cancel(self) -> bool:
        """Whether cancel_request reaches a transport that can act on it."""
        return self._cancel is not _noop_cancel

    def cancel_request(self, request: httpx.Request) -> None:
        """Forward a cancellation to the inner transport, if it supports one."""
        self._cancel(request)

    layer = "decorator"

    def _log_context(self, request: httpx.Request, **extra: Any) -> dict[str, Any]:
        """Build log record extras for a request passing through this layer."""
        return {
            "transport": self.layer,
            "method": request.method,
            "url": str(request.url),
            **extra,
        }


class TransportDecorator(_CancelForwarding, httpx.BaseTransport):
    """Base class for synchronous transport decorators.

    Subclasses implement handle_request and call self._inner.
    """

    def __init__(
        self,
        inner: httpx.BaseTransport | None = None,
        *,
        default_factory: Callable[[], httpx.BaseTransport] = httpx.HTTPTransport,
    ):
        self._inner = inner if inner is not None else default_factory()
        self._resolve_cancel()

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        return self._inner.handle_request(request)

    def close(self) -> None:
        self._inner.close()


class AsyncTransportDecorator(_CancelForwarding, httpx.AsyncBaseTransport):
    """Base class for asyncio transport decorators."""

    def __init__(
        self,
        inner: httpx.AsyncBaseTransport | None = None,
        *,
        default_factory: Callable[[], httpx.AsyncBaseTransport] = httpx.AsyncHTTPTransport,
    ):
        self._inner = inner if inner is not None else default_factory()
        self._resolve_cancel()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        return await self._inner.handle_async_request(request)

    async def aclose(self) -> None:
        await self._inner.aclose()


# =============================================================================
# Signal-based cancellation
# =============================================================================


class SignalCancellingTransport(TransportDecorator):
    """Makes any transport cancellable through the request's cancel signal.

    cancel_request sets the signal attached to the request; requests whose
    signal is already set fail with RequestCancelled before reaching inner.

    Usage:
        transport = build_rate_limited_transport(
            10, 1.0, SignalCancellingTransport(httpx.HTTPTransport())
        )
        transport.cancel_request(request)
    """

    layer = "signal_cancel"

    def cancel_request(self, request: httpx.Request) -> None:
        attach_cancel_signal(request).set()
        self._cancel(request)

    @property
    def supports_cancel(self) -> bool:
        return True

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        raise_if_cancelled(request)
        return self._inner.handle_request(request)


class AsyncSignalCancellingTransport(AsyncTransportDecorator):
    """Asyncio form of SignalCancellingTransport."""

    layer = "signal_cancel"

    def cancel_request(self, request: httpx.Request) -> None:
        attach_cancel_signal(request).set()
        self._cancel(request)

    @property
    def supports_cancel(self) -> bool:
        return True

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        raise_if_cancelled(request)
        return await self._inner.handle_async_request(request)
