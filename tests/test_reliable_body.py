"""Tests for the reliable body transport."""

import logging

import httpx
import pytest

from mediate.core.transports import (
    AsyncReliableBodyTransport,
    BodyReadError,
    ReliableBodyTransport,
    build_reliable_body_transport,
)

from conftest import AsyncStreamingTransport, RecordingTransport, StreamingTransport


class TestReliableBodyTransport:
    """Tests for ReliableBodyTransport."""

    def test_body_bytes_preserved(self, request_get):
        """Test that the buffered body yields exactly the original bytes."""
        inner = StreamingTransport([b"hello ", b"world"])
        transport = ReliableBodyTransport(inner)

        response = transport.handle_request(request_get)

        assert b"".join(response.stream) == b"hello world"

    def test_body_can_be_read_twice(self, request_get):
        """Test that the buffered body is re-readable."""
        transport = ReliableBodyTransport(StreamingTransport([b"abc", b"def"]))

        response = transport.handle_request(request_get)

        assert b"".join(response.stream) == b"abcdef"
        assert b"".join(response.stream) == b"abcdef"

    def test_original_stream_closed(self, request_get):
        """Test that the original stream is drained and closed."""
        inner = StreamingTransport([b"data"])
        transport = ReliableBodyTransport(inner)

        transport.handle_request(request_get)

        assert inner.streams[0].closed is True
        assert inner.streams[0].iterations == 1

    def test_status_and_headers_preserved(self, request_get):
        """Test that only the body is replaced."""
        inner = StreamingTransport([b"data"], status_code=202)
        response = ReliableBodyTransport(inner).handle_request(request_get)

        assert response.status_code == 202
        assert response.headers["X-Trace"] == "abc"
        assert response.extensions["http_version"] == b"HTTP/1.1"

    def test_body_read_failure(self, request_get):
        """Test that a failing body read raises BodyReadError and closes the stream."""
        inner = StreamingTransport([b"partial"], fail=True)
        transport = ReliableBodyTransport(inner)

        with pytest.raises(BodyReadError) as exc_info:
            transport.handle_request(request_get)

        assert isinstance(exc_info.value.__cause__, httpx.ReadError)
        assert exc_info.value.request is request_get
        assert inner.streams[0].closed is True

    def test_inner_failure_propagates_unchanged(self, request_get):
        """Test that inner transport errors pass straight through."""
        inner = RecordingTransport(always_fail=True)
        transport = ReliableBodyTransport(inner)

        with pytest.raises(httpx.ConnectError) as exc_info:
            transport.handle_request(request_get)

        assert exc_info.value is inner.errors[0]

    def test_request_delegated_unchanged(self, request_get):
        """Test that the request object reaches inner as-is."""
        inner = RecordingTransport()
        ReliableBodyTransport(inner).handle_request(request_get)

        assert inner.requests == [request_get]

    def test_log_records_name_the_layer(self, request_get, caplog):
        """Test that buffering is logged with the layer's request context."""
        with caplog.at_level(logging.DEBUG, logger="mediate"):
            ReliableBodyTransport(StreamingTransport([b"abc"])).handle_request(request_get)

        records = [r for r in caplog.records if getattr(r, "transport", None) == "reliable_body"]
        assert records
        assert records[-1].url == "https://api.example.test/items"

    def test_through_client(self):
        """Test use as an httpx.Client transport."""
        transport = build_reliable_body_transport(StreamingTransport([b"{\"a\": ", b"1}"]))

        with httpx.Client(transport=transport) as client:
            response = client.get("https://api.example.test/")

        assert response.json() == {"a": 1}

    def test_default_factory_used_without_inner(self):
        """Test that the explicit default factory builds the inner transport."""
        inner = RecordingTransport()
        transport = ReliableBodyTransport(default_factory=lambda: inner)

        assert transport.inner is inner

    def test_close_closes_inner(self):
        """Test that closing the decorator closes the inner transport."""
        inner = RecordingTransport()
        ReliableBodyTransport(inner).close()

        assert inner.closed is True


class TestAsyncReliableBodyTransport:
    """Tests for AsyncReliableBodyTransport."""

    @pytest.mark.asyncio
    async def test_body_buffered(self, request_get):
        """Test that the async body is buffered and re-readable."""
        inner = AsyncStreamingTransport([b"one", b"two"])
        transport = AsyncReliableBodyTransport(inner)

        response = await transport.handle_async_request(request_get)

        assert b"".join([chunk async for chunk in response.stream]) == b"onetwo"
        assert b"".join([chunk async for chunk in response.stream]) == b"onetwo"
        assert inner.streams[0].closed is True

    @pytest.mark.asyncio
    async def test_body_read_failure(self, request_get):
        """Test that an async read failure raises BodyReadError."""
        inner = AsyncStreamingTransport([b"x"], fail=True)

        with pytest.raises(BodyReadError):
            await AsyncReliableBodyTransport(inner).handle_async_request(request_get)

        assert inner.streams[0].closed is True

    @pytest.mark.asyncio
    async def test_through_async_client(self):
        """Test use as an httpx.AsyncClient transport."""
        transport = AsyncReliableBodyTransport(AsyncStreamingTransport([b"pong"]))

        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.get("https://api.example.test/ping")

        assert response.text == "pong"
