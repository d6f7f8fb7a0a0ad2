"""Transport decorators: cloning, retries, throttling, reliable bodies."""

from .base import (
    AsyncSignalCancellingTransport,
    AsyncTransportDecorator,
    BodyReadError,
    Cancellable,
    MediateError,
    NoAttemptsError,
    RequestCancelled,
    SignalCancellingTransport,
    TransportDecorator,
    attach_cancel_signal,
    get_cancel_signal,
)
from .cloning import abuffer_request, buffer_request, clone_request, clone_response
from .reliable_body import AsyncReliableBodyTransport, ReliableBodyTransport
from .retries import AsyncFixedRetryTransport, FixedRetryTransport
from .throttling import (
    AsyncRateLimitedTransport,
    RateLimitedTransport,
    RateLimiter,
    RateLimitStrategy,
)
from .compose import (
    build_async_fixed_retry_transport,
    build_async_rate_limited_transport,
    build_async_reliable_body_transport,
    build_fixed_retry_transport,
    build_rate_limited_transport,
    build_reliable_body_transport,
    compose_async_transport,
    compose_transport,
    create_async_client,
    create_client,
)

__all__ = [
    # Base classes
    "TransportDecorator",
    "AsyncTransportDecorator",
    "Cancellable",
    "SignalCancellingTransport",
    "AsyncSignalCancellingTransport",
    "attach_cancel_signal",
    "get_cancel_signal",
    # Errors
    "MediateError",
    "BodyReadError",
    "NoAttemptsError",
    "RequestCancelled",
    # Cloning
    "clone_request",
    "clone_response",
    "buffer_request",
    "abuffer_request",
    # Decorators
    "ReliableBodyTransport",
    "AsyncReliableBodyTransport",
    "FixedRetryTransport",
    "AsyncFixedRetryTransport",
    "RateLimiter",
    "RateLimitStrategy",
    "RateLimitedTransport",
    "AsyncRateLimitedTransport",
    # Builders
    "build_fixed_retry_transport",
    "build_reliable_body_transport",
    "build_rate_limited_transport",
    "build_async_fixed_retry_transport",
    "build_async_reliable_body_transport",
    "build_async_rate_limited_transport",
    "compose_transport",
    "compose_async_transport",
    "create_client",
    "create_async_client",
]
