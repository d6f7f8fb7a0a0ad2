"""Tests for the fixed retry transport."""

import logging

import httpx
import pytest

from mediate.core.transports import (
    AsyncFixedRetryTransport,
    FixedRetryTransport,
    NoAttemptsError,
    RequestCancelled,
    build_fixed_retry_transport,
)

from conftest import AsyncRecordingTransport, RecordingTransport


class TestFixedRetryTransport:
    """Tests for FixedRetryTransport."""

    def test_success_first_attempt(self, request_get):
        """Test that a successful call is made exactly once."""
        inner = RecordingTransport()
        transport = FixedRetryTransport(3, inner)

        response = transport.handle_request(request_get)

        assert response.status_code == 200
        assert inner.calls == 1

    def test_always_failing_makes_exactly_n_calls(self, request_get):
        """Test that N attempts means N calls, not N + 1."""
        inner = RecordingTransport(always_fail=True)
        transport = build_fixed_retry_transport(3, inner)

        with pytest.raises(httpx.ConnectError):
            transport.handle_request(request_get)

        assert inner.calls == 3

    def test_last_error_is_raised(self, request_get):
        """Test that the error from the final attempt surfaces."""
        inner = RecordingTransport(always_fail=True)
        transport = FixedRetryTransport(4, inner)

        with pytest.raises(httpx.ConnectError) as exc_info:
            transport.handle_request(request_get)

        assert exc_info.value is inner.errors[-1]
        assert "call 4" in str(exc_info.value)

    @pytest.mark.parametrize("attempts,succeed_on", [(1, 1), (3, 1), (3, 2), (3, 3), (5, 4)])
    def test_success_on_call_k(self, request_get, attempts, succeed_on):
        """Test that the decorator stops at the first successful call."""
        inner = RecordingTransport(failures=succeed_on - 1, content=b"done")
        transport = FixedRetryTransport(attempts, inner)

        response = transport.handle_request(request_get)

        assert inner.calls == succeed_on
        assert response.read() == b"done"

    @pytest.mark.parametrize("attempts", [0, -1, -10])
    def test_non_positive_attempts_rejected(self, attempts):
        """Test that no-attempt budgets are a configuration error."""
        with pytest.raises(NoAttemptsError) as exc_info:
            FixedRetryTransport(attempts, RecordingTransport())

        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.attempts == attempts

    def test_each_attempt_gets_fresh_clone(self, request_get):
        """Test that attempts never see the caller's request object."""
        inner = RecordingTransport(failures=2)
        transport = FixedRetryTransport(3, inner)

        transport.handle_request(request_get)

        assert len({id(r) for r in inner.requests}) == 3
        assert all(r is not request_get for r in inner.requests)
        assert all(r.headers["X-Token"] == "t" for r in inner.requests)

    def test_attempt_mutation_not_visible_to_caller(self, request_get):
        """Test that an inner transport mutating its request leaves the original intact."""

        class MutatingTransport(RecordingTransport):
            def handle_request(self, request):
                request.headers["X-Attempt"] = str(self.calls + 1)
                return super().handle_request(request)

        inner = MutatingTransport(failures=1)
        FixedRetryTransport(2, inner).handle_request(request_get)

        assert "X-Attempt" not in request_get.headers
        assert [r.headers["X-Attempt"] for r in inner.requests] == ["1", "2"]

    def test_streaming_body_replayed(self):
        """Test that a streaming request body is available to every attempt."""
        bodies = []

        class BodyReadingTransport(RecordingTransport):
            def handle_request(self, request):
                bodies.append(request.read())
                return super().handle_request(request)

        request = httpx.Request("POST", "https://api.example.test/", content=iter([b"a", b"b"]))
        inner = BodyReadingTransport(failures=2)

        FixedRetryTransport(3, inner).handle_request(request)

        assert bodies == [b"ab", b"ab", b"ab"]

    def test_non_matching_errors_not_retried(self, request_get):
        """Test that errors outside retry_on propagate after one call."""
        inner = RecordingTransport(always_fail=True)
        transport = FixedRetryTransport(3, inner, retry_on=(httpx.TimeoutException,))

        with pytest.raises(httpx.ConnectError):
            transport.handle_request(request_get)

        assert inner.calls == 1

    def test_cancellation_not_retried(self, request_get):
        """Test that RequestCancelled stops the retry loop."""

        class CancellingTransport(RecordingTransport):
            def handle_request(self, request):
                self.requests.append(request)
                raise RequestCancelled("cancelled", request=request)

        inner = CancellingTransport()
        with pytest.raises(RequestCancelled):
            FixedRetryTransport(5, inner).handle_request(request_get)

        assert inner.calls == 1

    def test_retries_logged(self, request_get, caplog):
        """Test that each retry is logged as a warning."""
        inner = RecordingTransport(failures=2)

        with caplog.at_level(logging.WARNING, logger="mediate"):
            FixedRetryTransport(3, inner).handle_request(request_get)

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 2

    def test_attempt_context_on_log_records(self, request_get, caplog):
        """Test that attempt records carry layer, request and attempt number."""
        inner = RecordingTransport(failures=2)

        with caplog.at_level(logging.DEBUG, logger="mediate"):
            FixedRetryTransport(3, inner).handle_request(request_get)

        records = [r for r in caplog.records if hasattr(r, "attempt")]
        assert [r.attempt for r in records] == [1, 2, 3]
        assert all(r.transport == "fixed_retry" for r in records)
        assert all(r.method == "GET" for r in records)
        assert all(r.url == "https://api.example.test/items" for r in records)

    def test_through_client(self):
        """Test use as an httpx.Client transport."""
        inner = RecordingTransport(failures=1, content=b"ok")

        with httpx.Client(transport=FixedRetryTransport(2, inner)) as client:
            response = client.get("https://api.example.test/")

        assert response.text == "ok"
        assert inner.calls == 2


class TestAsyncFixedRetryTransport:
    """Tests for AsyncFixedRetryTransport."""

    @pytest.mark.asyncio
    async def test_exactly_n_calls_and_last_error(self, request_get):
        """Test the exhausted-retries contract for asyncio."""
        inner = AsyncRecordingTransport(always_fail=True)
        transport = AsyncFixedRetryTransport(3, inner)

        with pytest.raises(httpx.ConnectError) as exc_info:
            await transport.handle_async_request(request_get)

        assert inner.calls == 3
        assert exc_info.value is inner.errors[-1]

    @pytest.mark.asyncio
    async def test_success_on_second_call(self, request_get):
        """Test that an async retry returns the first success."""
        inner = AsyncRecordingTransport(failures=1)

        response = await AsyncFixedRetryTransport(3, inner).handle_async_request(request_get)

        assert response.status_code == 200
        assert inner.calls == 2

    def test_non_positive_attempts_rejected(self):
        """Test that the async form validates attempts too."""
        with pytest.raises(NoAttemptsError):
            AsyncFixedRetryTransport(0, AsyncRecordingTransport())
