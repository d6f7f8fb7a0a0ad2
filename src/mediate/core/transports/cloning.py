"""
Request and response cloning.

Clones are shallow: a new object with its own headers and extensions,
sharing the body stream with the original unless the body is already
buffered in memory (or a replacement stream is supplied).
"""

from __future__ import annotations

import httpx


def _buffered_content(request: httpx.Request) -> bytes | None:
    """Return the request body if it has already been read into memory."""
    try:
        return request.content
    except httpx.RequestNotRead:
        return None


def clone_request(request: httpx.Request) -> httpx.Request:
    """Return an independent shallow copy of a request.

    A buffered body gets its own in-memory stream in the clone. An unread
    streaming body is shared by reference, so it can only be consumed once
    across the original and all of its clones.
    """
    content = _buffered_content(request)
    stream = httpx.ByteStream(content) if content is not None else request.stream

    clone = httpx.Request(
        request.method,
        request.url,
        headers=request.headers.copy(),
        stream=stream,
        extensions=dict(request.extensions),
    )
    if content is not None:
        clone.read()
    return clone


def buffer_request(request: httpx.Request) -> httpx.Request:
    """Return a clone of request whose body is fully buffered and replayable.

    The original's body stream is drained when it has not been read yet;
    its method, URL and headers are left untouched.
    """
    if _buffered_content(request) is not None:
        return clone_request(request)

    body = b"".join(request.stream)  # type: ignore[arg-type]
    clone = httpx.Request(
        request.method,
        request.url,
        headers=request.headers.copy(),
        stream=httpx.ByteStream(body),
        extensions=dict(request.extensions),
    )
    clone.read()
    return clone


async def abuffer_request(request: httpx.Request) -> httpx.Request:
    """Asyncio form of buffer_request."""
    if _buffered_content(request) is not None:
        return clone_request(request)

    chunks = [chunk async for chunk in request.stream]  # type: ignore[union-attr]
    clone = httpx.Request(
        request.method,
        request.url,
        headers=request.headers.copy(),
        stream=httpx.ByteStream(b"".join(chunks)),
        extensions=dict(request.extensions),
    )
    clone.read()
    return clone


def _bound_request(response: httpx.Response) -> httpx.Request | None:
    try:
        return response.request
    except RuntimeError:
        # Transport-level responses are not bound to a request yet
        return None


def clone_response(
    response: httpx.Response,
    *,
    stream: httpx.SyncByteStream | httpx.AsyncByteStream | None = None,
) -> httpx.Response:
    """Return a shallow copy of a response.

    Args:
        response: Response to copy
        stream: Replacement body stream (default: share the original's)

    Returns:
        New response with identical status, headers and extensions
    """
    return httpx.Response(
        response.status_code,
        headers=response.headers.copy(),
        stream=stream if stream is not None else response.stream,
        request=_bound_request(response),
        extensions=dict(response.extensions),
        history=list(response.history),
        default_encoding=response.default_encoding,
    )
