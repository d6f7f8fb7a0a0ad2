"""
mediate - Composable resilience decorators for httpx transports.

Wraps any httpx transport with bounded fixed retries, rate limiting and
fully buffered response bodies, keeping the transport contract intact so
decorators nest in any order.
"""

__version__ = "0.1.0"
__app_name__ = "mediate"

from mediate.core.transports import (  # noqa: E402
    BodyReadError,
    Cancellable,
    FixedRetryTransport,
    MediateError,
    NoAttemptsError,
    RateLimitedTransport,
    RateLimiter,
    RateLimitStrategy,
    ReliableBodyTransport,
    RequestCancelled,
    build_fixed_retry_transport,
    build_rate_limited_transport,
    build_reliable_body_transport,
    compose_transport,
    create_client,
)

__all__ = [
    "__version__",
    "BodyReadError",
    "Cancellable",
    "FixedRetryTransport",
    "MediateError",
    "NoAttemptsError",
    "RateLimitedTransport",
    "RateLimiter",
    "RateLimitStrategy",
    "ReliableBodyTransport",
    "RequestCancelled",
    "build_fixed_retry_transport",
    "build_rate_limited_transport",
    "build_reliable_body_transport",
    "compose_transport",
    "create_client",
]
