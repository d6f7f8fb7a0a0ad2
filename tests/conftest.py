"""Shared test transports and streams."""

from __future__ import annotations

from typing import Iterator

import httpx
import pytest


class RecordingTransport(httpx.BaseTransport):
    """Fails the first `failures` calls, then answers with `content`.

    Every request received is kept in `requests`; every error raised in
    `errors`.
    """

    def __init__(
        self,
        failures: int = 0,
        content: bytes = b"ok",
        status_code: int = 200,
        always_fail: bool = False,
    ) -> None:
        self.failures = failures
        self.content = content
        self.status_code = status_code
        self.always_fail = always_fail
        self.requests: list[httpx.Request] = []
        self.errors: list[Exception] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.requests)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.always_fail or self.calls <= self.failures:
            error = httpx.ConnectError(f"connection refused (call {self.calls})", request=request)
            self.errors.append(error)
            raise error
        return httpx.Response(self.status_code, content=self.content)

    def close(self) -> None:
        self.closed = True


class AsyncRecordingTransport(httpx.AsyncBaseTransport):
    """Asyncio form of RecordingTransport."""

    def __init__(self, failures: int = 0, content: bytes = b"ok", always_fail: bool = False) -> None:
        self.failures = failures
        self.content = content
        self.always_fail = always_fail
        self.requests: list[httpx.Request] = []
        self.errors: list[Exception] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.always_fail or self.calls <= self.failures:
            error = httpx.ConnectError(f"connection refused (call {self.calls})", request=request)
            self.errors.append(error)
            raise error
        return httpx.Response(200, content=self.content)


class CancellableTransport(RecordingTransport):
    """RecordingTransport that also records cancellations."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.cancelled: list[httpx.Request] = []

    def cancel_request(self, request: httpx.Request) -> None:
        self.cancelled.append(request)


class TrackingStream(httpx.SyncByteStream):
    """Single-use body stream that can fail part way and records closing."""

    def __init__(self, chunks: list[bytes], fail: bool = False) -> None:
        self.chunks = chunks
        self.fail = fail
        self.closed = False
        self.iterations = 0

    def __iter__(self) -> Iterator[bytes]:
        self.iterations += 1
        yield from self.chunks
        if self.fail:
            raise httpx.ReadError("connection reset while reading body")

    def close(self) -> None:
        self.closed = True


class AsyncTrackingStream(httpx.AsyncByteStream):
    """Asyncio form of TrackingStream."""

    def __init__(self, chunks: list[bytes], fail: bool = False) -> None:
        self.chunks = chunks
        self.fail = fail
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.fail:
            raise httpx.ReadError("connection reset while reading body")

    async def aclose(self) -> None:
        self.closed = True


class StreamingTransport(httpx.BaseTransport):
    """Answers every request with a response over a fresh TrackingStream."""

    def __init__(self, chunks: list[bytes], fail: bool = False, status_code: int = 200) -> None:
        self.chunks = chunks
        self.fail = fail
        self.status_code = status_code
        self.streams: list[TrackingStream] = []

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        stream = TrackingStream(self.chunks, fail=self.fail)
        self.streams.append(stream)
        return httpx.Response(
            self.status_code,
            headers={"Content-Type": "text/plain", "X-Trace": "abc"},
            stream=stream,
            extensions={"http_version": b"HTTP/1.1"},
        )


class AsyncStreamingTransport(httpx.AsyncBaseTransport):
    """Asyncio form of StreamingTransport."""

    def __init__(self, chunks: list[bytes], fail: bool = False) -> None:
        self.chunks = chunks
        self.fail = fail
        self.streams: list[AsyncTrackingStream] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        stream = AsyncTrackingStream(self.chunks, fail=self.fail)
        self.streams.append(stream)
        return httpx.Response(200, headers={"Content-Type": "text/plain"}, stream=stream)


class FakeClock:
    """Manual clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def request_get() -> httpx.Request:
    return httpx.Request("GET", "https://api.example.test/items", headers={"X-Token": "t"})


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
