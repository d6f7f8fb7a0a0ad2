"""
Transport construction entry points.

Builders return a ready-to-use transport without doing any I/O; the
default base transport is only created when no inner transport is given.
Pipelines can also be composed from a PipelineConfig.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Callable

import httpx

from .reliable_body import AsyncReliableBodyTransport, ReliableBodyTransport
from .retries import AsyncFixedRetryTransport, FixedRetryTransport
from .throttling import AsyncRateLimitedTransport, RateLimitedTransport, RateLimitStrategy

if TYPE_CHECKING:
    from mediate.core.config.models import AppConfig, PipelineConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Builders
# =============================================================================


def build_fixed_retry_transport(
    attempts: int,
    inner: httpx.BaseTransport | None = None,
    *,
    default_factory: Callable[[], httpx.BaseTransport] = httpx.HTTPTransport,
    **kwargs: Any,
) -> FixedRetryTransport:
    """Build a transport that makes at most `attempts` calls to inner per request."""
    return FixedRetryTransport(attempts, inner, default_factory=default_factory, **kwargs)


def build_reliable_body_transport(
    inner: httpx.BaseTransport | None = None,
    *,
    default_factory: Callable[[], httpx.BaseTransport] = httpx.HTTPTransport,
) -> ReliableBodyTransport:
    """Build a transport that buffers response bodies in memory."""
    return ReliableBodyTransport(inner, default_factory=default_factory)


def build_rate_limited_transport(
    limit: int,
    window: float | timedelta,
    inner: httpx.BaseTransport | None = None,
    *,
    strategy: RateLimitStrategy | str = RateLimitStrategy.SLIDING_WINDOW,
    default_factory: Callable[[], httpx.BaseTransport] = httpx.HTTPTransport,
) -> RateLimitedTransport:
    """Build a transport admitting at most `limit` requests per `window`."""
    return RateLimitedTransport(
        limit, window, inner, strategy=strategy, default_factory=default_factory
    )


def build_async_fixed_retry_transport(
    attempts: int,
    inner: httpx.AsyncBaseTransport | None = None,
    *,
    default_factory: Callable[[], httpx.AsyncBaseTransport] = httpx.AsyncHTTPTransport,
    **kwargs: Any,
) -> AsyncFixedRetryTransport:
    return AsyncFixedRetryTransport(attempts, inner, default_factory=default_factory, **kwargs)


def build_async_reliable_body_transport(
    inner: httpx.AsyncBaseTransport | None = None,
    *,
    default_factory: Callable[[], httpx.AsyncBaseTransport] = httpx.AsyncHTTPTransport,
) -> AsyncReliableBodyTransport:
    return AsyncReliableBodyTransport(inner, default_factory=default_factory)


def build_async_rate_limited_transport(
    limit: int,
    window: float | timedelta,
    inner: httpx.AsyncBaseTransport | None = None,
    *,
    strategy: RateLimitStrategy | str = RateLimitStrategy.SLIDING_WINDOW,
    default_factory: Callable[[], httpx.AsyncBaseTransport] = httpx.AsyncHTTPTransport,
) -> AsyncRateLimitedTransport:
    return AsyncRateLimitedTransport(
        limit, window, inner, strategy=strategy, default_factory=default_factory
    )


# =============================================================================
# Composition from configuration
# =============================================================================


def _compose(
    config: PipelineConfig,
    inner: Any,
    builders: dict[str, Callable[[Any], Any]],
) -> Any:
    from mediate.core.config.models import LayerType

    transport = inner

    # Wrap from the innermost layer outwards
    for layer in reversed(config.layers):
        if layer is LayerType.RELIABLE_BODY and not config.reliable_body.enabled:
            continue
        transport = builders[layer.value](transport)

    logger.debug(
        "Composed transport pipeline: "
        + " -> ".join(layer.value for layer in config.layers)
    )
    return transport


def compose_transport(
    config: PipelineConfig | None = None,
    inner: httpx.BaseTransport | None = None,
    *,
    default_factory: Callable[[], httpx.BaseTransport] = httpx.HTTPTransport,
) -> httpx.BaseTransport:
    """Build a synchronous decorator chain from configuration.

    Args:
        config: Pipeline configuration (default: PipelineConfig())
        inner: Base transport (default: default_factory())
        default_factory: Builds the base transport when none is given

    Returns:
        The outermost transport of the chain
    """
    base = inner if inner is not None else default_factory()
    if config is None:
        from mediate.core.config.models import PipelineConfig

        config = PipelineConfig()

    retry = config.retry
    rate = config.rate_limit
    return _compose(
        config,
        base,
        {
            "retry": lambda t: FixedRetryTransport(
                retry.attempts, t, buffer_request_body=retry.buffer_request_body
            ),
            "rate_limit": lambda t: RateLimitedTransport(
                rate.limit, rate.window, t, strategy=rate.strategy
            ),
            "reliable_body": lambda t: ReliableBodyTransport(t),
        },
    )


def compose_async_transport(
    config: PipelineConfig | None = None,
    inner: httpx.AsyncBaseTransport | None = None,
    *,
    default_factory: Callable[[], httpx.AsyncBaseTransport] = httpx.AsyncHTTPTransport,
) -> httpx.AsyncBaseTransport:
    """Asyncio form of compose_transport."""
    base = inner if inner is not None else default_factory()
    if config is None:
        from mediate.core.config.models import PipelineConfig

        config = PipelineConfig()

    retry = config.retry
    rate = config.rate_limit
    return _compose(
        config,
        base,
        {
            "retry": lambda t: AsyncFixedRetryTransport(
                retry.attempts, t, buffer_request_body=retry.buffer_request_body
            ),
            "rate_limit": lambda t: AsyncRateLimitedTransport(
                rate.limit, rate.window, t, strategy=rate.strategy
            ),
            "reliable_body": lambda t: AsyncReliableBodyTransport(t),
        },
    )


def _client_kwargs(config: AppConfig | None, kwargs: dict[str, Any]) -> dict[str, Any]:
    if config is not None:
        kwargs.setdefault("timeout", httpx.Timeout(config.timeout_seconds))
        if config.user_agent:
            headers = dict(kwargs.pop("headers", None) or {})
            headers.setdefault("User-Agent", config.user_agent)
            kwargs["headers"] = headers
    return kwargs


def create_client(
    config: AppConfig | None = None,
    inner: httpx.BaseTransport | None = None,
    *,
    default_factory: Callable[[], httpx.BaseTransport] = httpx.HTTPTransport,
    **client_kwargs: Any,
) -> httpx.Client:
    """Create an httpx.Client whose transport is the configured pipeline."""
    pipeline = config.pipeline if config is not None else None
    transport = compose_transport(pipeline, inner, default_factory=default_factory)
    return httpx.Client(transport=transport, **_client_kwargs(config, client_kwargs))


def create_async_client(
    config: AppConfig | None = None,
    inner: httpx.AsyncBaseTransport | None = None,
    *,
    default_factory: Callable[[], httpx.AsyncBaseTransport] = httpx.AsyncHTTPTransport,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """Create an httpx.AsyncClient whose transport is the configured pipeline."""
    pipeline = config.pipeline if config is not None else None
    transport = compose_async_transport(pipeline, inner, default_factory=default_factory)
    return httpx.AsyncClient(transport=transport, **_client_kwargs(config, client_kwargs))
