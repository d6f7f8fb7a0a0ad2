"""
Reliable body transport.

Consumes the whole response body into memory and hands back a response
whose body can be read any number of times. Trades memory for the
ability to treat every exchange as a complete operation.
"""

from __future__ import annotations

import logging
from typing import cast

import httpx

from .base import AsyncTransportDecorator, BodyReadError, TransportDecorator
from .cloning import clone_response

logger = logging.getLogger(__name__)


def _read_failure(request: httpx.Request, exc: Exception, extra: dict) -> BodyReadError:
    logger.debug(f"Body read failed for {request.method} {request.url}: {exc}", extra=extra)
    return BodyReadError(
        f"Failed to read response body: {exc}",
        request=request,
        cause=exc,
    )


class ReliableBodyTransport(TransportDecorator):
    """Buffers every response body fully in memory.

    Usage:
        transport = ReliableBodyTransport(httpx.HTTPTransport())
        with httpx.Client(transport=transport) as client:
            response = client.get("https://example.com")
    """

    layer = "reliable_body"

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        response = self._inner.handle_request(request)

        stream = cast(httpx.SyncByteStream, response.stream)
        try:
            body = b"".join(stream)
        except Exception as e:
            raise _read_failure(request, e, self._log_context(request)) from e
        finally:
            stream.close()

        logger.debug(
            f"Buffered {len(body)} bytes for {request.method} {request.url}",
            extra=self._log_context(request),
        )
        return clone_response(response, stream=httpx.ByteStream(body))


class AsyncReliableBodyTransport(AsyncTransportDecorator):
    """Asyncio form of ReliableBodyTransport."""

    layer = "reliable_body"

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        response = await self._inner.handle_async_request(request)

        stream = cast(httpx.AsyncByteStream, response.stream)
        try:
            body = b"".join([chunk async for chunk in stream])
        except Exception as e:
            raise _read_failure(request, e, self._log_context(request)) from e
        finally:
            await stream.aclose()

        logger.debug(
            f"Buffered {len(body)} bytes for {request.method} {request.url}",
            extra=self._log_context(request),
        )
        return clone_response(response, stream=httpx.ByteStream(body))
