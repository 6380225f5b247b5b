"""
Tests for the request lifecycle.

Covers outcome ordering, deferred creation errors, status handling,
aborts, cleanup and cookie propagation.
"""

from unittest.mock import Mock

import pytest

from polling_core.cookies import CookieJar
from polling_core.exceptions import CreationError, NetworkError, TimeoutError
from polling_core.lifecycle import RequestLifecycle, RequestState
from polling_core.native.mock import MockRequestFactory
from polling_core.capabilities import RequestProvider
from polling_core.options import RequestOptions

URI = "http://localhost:3000/poll/?EIO=4&transport=polling"


def record(request):
    """Subscribe to every outcome and return the event log."""
    events = []
    request.on("data", lambda data: events.append(("data", data)))
    request.on("success", lambda: events.append(("success",)))
    request.on("error", lambda error: events.append(("error", error)))
    return events


class TestRequestCreation:
    """Test what a lifecycle does to the native request before sending."""

    @pytest.mark.asyncio
    async def test_get_by_default(self, provider, factory):
        """Test that a request without options is a GET with no body."""
        request = RequestLifecycle(provider, URI)
        native = factory.last

        assert native.method == "GET"
        assert native.url == URI
        assert native.sent
        assert native.sent_body is None
        assert request.state is RequestState.SENT
        assert request.native is native

    @pytest.mark.asyncio
    async def test_post_headers(self, provider, factory):
        """Test header order: extra headers, then content type, then accept."""
        options = RequestOptions(method="POST", data="4hello", extra_headers={"X-Custom": "1"})
        RequestLifecycle(provider, URI, options)
        native = factory.last

        assert native.request_headers == [
            ("X-Custom", "1"),
            ("Content-type", "text/plain;charset=UTF-8"),
            ("Accept", "*/*"),
        ]
        assert native.sent_body == "4hello"

    @pytest.mark.asyncio
    async def test_get_has_no_content_type(self, provider, factory):
        """Test that polls only send the accept header."""
        RequestLifecycle(provider, URI)
        assert factory.last.request_headers == [("Accept", "*/*")]

    @pytest.mark.asyncio
    async def test_failing_header_is_skipped(self, capabilities, run_pending):
        """Test that one refused header does not prevent sending."""
        factory = MockRequestFactory(fail_on_headers=["x-bad"])
        provider = RequestProvider(factory, capabilities=capabilities)
        options = RequestOptions(extra_headers={"X-Bad": "1", "X-Good": "2"})

        request = RequestLifecycle(provider, URI, options)
        events = record(request)
        await run_pending()

        native = factory.last
        assert native.sent
        assert native.get_request_header("X-Good") == "2"
        assert native.get_request_header("X-Bad") is None
        assert native.get_request_header("Accept") == "*/*"
        assert events == []

    @pytest.mark.asyncio
    async def test_credentials_applied_when_supported(self, provider, factory):
        """Test that the credentials flag reaches the native request."""
        RequestLifecycle(provider, URI, RequestOptions(with_credentials=True))
        assert factory.last.with_credentials is True

    @pytest.mark.asyncio
    async def test_credentials_ignored_when_unsupported(self, capabilities):
        """Test that the credentials flag is not set on primitives without one."""
        factory = MockRequestFactory(supports_credentials=False)
        provider = RequestProvider(factory, capabilities=capabilities)

        RequestLifecycle(provider, URI, RequestOptions(with_credentials=True))
        assert factory.last.with_credentials is False

    @pytest.mark.asyncio
    async def test_timeout_applied(self, provider, factory):
        """Test that the request timeout is delegated to the native request."""
        RequestLifecycle(provider, URI, RequestOptions(request_timeout=20.0))
        assert factory.last.timeout == 20.0

    @pytest.mark.asyncio
    async def test_no_timeout_by_default(self, provider, factory):
        """Test that no timeout is set unless configured."""
        RequestLifecycle(provider, URI)
        assert factory.last.timeout is None


class TestSuccess:
    """Test successful completion."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 1223])
    async def test_data_then_success_then_cleanup(self, provider, factory, status):
        """Test outcome order and cleanup for both success statuses."""
        request = RequestLifecycle(provider, URI)
        events = record(request)
        native = factory.last

        native.respond(status, "hello")

        assert events == [("data", "hello"), ("success",)]
        assert request.state is RequestState.COMPLETED
        assert request.native is None
        assert native.abort_count == 0

    @pytest.mark.asyncio
    async def test_absent_body_skips_data(self, provider, factory):
        """Test that success is emitted without data when there is no body."""
        request = RequestLifecycle(provider, URI)
        events = record(request)

        factory.last.respond(200, None)

        assert events == [("success",)]

    @pytest.mark.asyncio
    async def test_empty_body_is_data(self, provider, factory):
        """Test that an empty body is still delivered."""
        request = RequestLifecycle(provider, URI)
        events = record(request)

        factory.last.respond(200, "")

        assert events == [("data", ""), ("success",)]

    @pytest.mark.asyncio
    async def test_binary_body(self, provider, factory):
        """Test that binary bodies are delivered unchanged."""
        request = RequestLifecycle(provider, URI)
        events = record(request)

        factory.last.respond(200, b"\x01\x02")

        assert events[0] == ("data", b"\x01\x02")

    @pytest.mark.asyncio
    async def test_nothing_before_done(self, provider, factory):
        """Test that headers and body alone do not complete the request."""
        request = RequestLifecycle(provider, URI)
        events = record(request)
        native = factory.last

        native.receive_headers(200)
        native.receive_body("partial")

        assert events == []
        assert request.state is RequestState.HEADERS_RECEIVED
        assert request.native is native

    @pytest.mark.asyncio
    async def test_handler_error_still_cleans_up(self, provider, factory):
        """Test that a raising data handler does not leak the native request."""
        request = RequestLifecycle(provider, URI)

        def explode(data):
            raise RuntimeError("handler failed")

        request.on("data", explode)

        with pytest.raises(RuntimeError):
            factory.last.respond(200, "hello")

        assert request.state is RequestState.COMPLETED
        assert request.native is None


class TestNetworkErrors:
    """Test completion with statuses outside the success set."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [0, 204, 304, 404, 500, 503])
    async def test_error_is_deferred_and_carries_status(self, provider, factory, run_pending, status):
        """Test that exactly one error with the raw status is emitted on the next iteration."""
        request = RequestLifecycle(provider, URI)
        events = record(request)
        native = factory.last

        native.respond(status, "ignored")
        assert events == []

        await run_pending()

        assert len(events) == 1
        kind, error = events[0]
        assert kind == "error"
        assert isinstance(error, NetworkError)
        assert error.status == status
        assert error.context is native
        assert request.state is RequestState.ERRORED
        assert request.native is None
        assert native.abort_count == 1

    @pytest.mark.asyncio
    async def test_non_numeric_status_becomes_zero(self, provider, factory, run_pending):
        """Test that a non-numeric status is reported as 0."""
        request = RequestLifecycle(provider, URI)
        events = record(request)

        factory.last.respond("unknown", None)
        await run_pending()

        assert events[0][1].status == 0

    @pytest.mark.asyncio
    async def test_failure_without_response(self, provider, factory, run_pending):
        """Test a network failure where no headers ever arrived."""
        request = RequestLifecycle(provider, URI)
        events = record(request)
        cause = OSError("connection refused")

        factory.last.fail(error=cause)
        await run_pending()

        error = events[0][1]
        assert type(error) is NetworkError
        assert error.status == 0
        assert error.cause is cause

    @pytest.mark.asyncio
    async def test_timeout_is_a_network_error(self, capabilities, run_pending):
        """Test that a native timeout surfaces as a status-0 NetworkError subtype."""
        factory = MockRequestFactory()
        provider = RequestProvider(factory, capabilities=capabilities)
        request = RequestLifecycle(provider, URI, RequestOptions(request_timeout=5.0))
        events = record(request)

        factory.last.fail(timed_out=True)
        await run_pending()

        error = events[0][1]
        assert isinstance(error, TimeoutError)
        assert isinstance(error, NetworkError)
        assert error.status == 0
        assert error.timeout == 5.0

    @pytest.mark.asyncio
    async def test_failing_native_abort_is_ignored(self, capabilities, run_pending):
        """Test that forced aborts are best-effort."""
        factory = MockRequestFactory(fail_on_abort=RuntimeError("already closed"))
        provider = RequestProvider(factory, capabilities=capabilities)
        request = RequestLifecycle(provider, URI)
        events = record(request)

        factory.last.respond(500)
        await run_pending()

        assert len(events) == 1
        assert request.native is None

    @pytest.mark.asyncio
    async def test_repeated_done_emits_once(self, provider, factory, run_pending):
        """Test that a host reporting DONE twice still yields one error."""
        request = RequestLifecycle(provider, URI)
        events = record(request)
        native = factory.last

        native.respond(500)
        native.finish()
        await run_pending()

        assert len(events) == 1


class TestCreationErrors:
    """Test failures while creating the native request."""

    @pytest.mark.asyncio
    async def test_factory_failure_is_deferred(self, capabilities, run_pending):
        """Test that a listener attached after construction gets the error."""
        cause = RuntimeError("no request primitive")
        provider = RequestProvider(MockRequestFactory(error=cause), capabilities=capabilities)

        request = RequestLifecycle(provider, URI)
        errors = []
        request.on("error", errors.append)

        assert errors == []
        assert request.state is RequestState.CREATED

        await run_pending()

        assert len(errors) == 1
        assert isinstance(errors[0], CreationError)
        assert request.state is RequestState.ERRORED

    @pytest.mark.asyncio
    async def test_send_failure_is_deferred(self, capabilities, run_pending):
        """Test that a raising send() is reported and the native request aborted."""
        cause = OSError("send failed")
        factory = MockRequestFactory(fail_on_send=cause)
        provider = RequestProvider(factory, capabilities=capabilities)

        request = RequestLifecycle(provider, URI)
        errors = []
        request.on("error", errors.append)
        await run_pending()

        assert errors[0].cause is cause
        assert errors[0].context is factory.last
        assert factory.last.abort_count == 1
        assert request.native is None

    @pytest.mark.asyncio
    async def test_open_failure_is_deferred(self, capabilities, run_pending):
        """Test that a raising open() is reported."""
        factory = MockRequestFactory(fail_on_open=ValueError("bad url"))
        provider = RequestProvider(factory, capabilities=capabilities)

        request = RequestLifecycle(provider, URI)
        errors = []
        request.on("error", errors.append)
        await run_pending()

        assert isinstance(errors[0], CreationError)
        assert not factory.last.sent

    @pytest.mark.asyncio
    async def test_abort_before_deferred_error(self, capabilities, run_pending):
        """Test that aborting suppresses a pending creation error."""
        provider = RequestProvider(MockRequestFactory(error=RuntimeError()), capabilities=capabilities)

        request = RequestLifecycle(provider, URI)
        errors = []
        request.on("error", errors.append)
        request.abort()
        await run_pending()

        assert errors == []
        assert request.state is RequestState.ABORTED

    @pytest.mark.asyncio
    async def test_failed_request_is_not_registered(self, capabilities, registry, run_pending):
        """Test that requests failing before send never enter the registry."""
        provider = RequestProvider(MockRequestFactory(error=RuntimeError()), capabilities=capabilities)

        request = RequestLifecycle(provider, URI, registry=registry)

        assert request.index is None
        assert len(registry) == 0
        await run_pending()


class TestAbort:
    """Test explicit cancellation."""

    @pytest.mark.asyncio
    async def test_abort_sent_request(self, provider, factory, run_pending):
        """Test that abort silences late completions from the host."""
        request = RequestLifecycle(provider, URI)
        events = record(request)
        native = factory.last

        request.abort()
        native.respond(200, "late")
        await run_pending()

        assert request.state is RequestState.ABORTED
        assert native.abort_count == 1
        assert request.native is None
        assert events == []

    @pytest.mark.asyncio
    async def test_abort_after_headers(self, provider, factory, run_pending):
        """Test aborting once headers were received."""
        request = RequestLifecycle(provider, URI)
        events = record(request)
        native = factory.last

        native.receive_headers(200)
        request.abort()
        native.receive_body("late")
        native.finish()
        await run_pending()

        assert request.state is RequestState.ABORTED
        assert events == []

    @pytest.mark.asyncio
    async def test_abort_suppresses_pending_network_error(self, provider, factory, run_pending):
        """Test aborting between a failed completion and its deferred error."""
        request = RequestLifecycle(provider, URI)
        events = record(request)
        native = factory.last

        native.respond(500)
        request.abort()
        await run_pending()

        assert events == []
        assert request.state is RequestState.ABORTED
        assert native.abort_count == 1

    @pytest.mark.asyncio
    async def test_abort_after_completion_is_noop(self, provider, factory):
        """Test that aborting a completed request does nothing."""
        request = RequestLifecycle(provider, URI)
        native = factory.last
        native.respond(200, "hello")

        request.abort()

        assert request.state is RequestState.COMPLETED
        assert native.abort_count == 0

    @pytest.mark.asyncio
    async def test_abort_after_error_is_noop(self, provider, factory, run_pending):
        """Test that aborting an errored request adds no side effects."""
        request = RequestLifecycle(provider, URI)
        native = factory.last
        native.respond(404)
        await run_pending()

        request.abort()

        assert request.state is RequestState.ERRORED
        assert native.abort_count == 1

    @pytest.mark.asyncio
    async def test_cleanup_is_idempotent(self, provider, factory):
        """Test that repeated cleanup has no duplicate side effects."""
        request = RequestLifecycle(provider, URI)
        native = factory.last

        request._cleanup(force=True)
        request._cleanup(force=True)

        assert native.abort_count == 1
        assert request.native is None


class TestCookies:
    """Test cookie jar hooks."""

    @pytest.mark.asyncio
    async def test_add_cookies_once_before_send(self, provider, factory):
        """Test that cookies are added exactly once, before send()."""
        jar = Mock(spec=CookieJar)
        sent_at_call = []
        jar.add_cookies.side_effect = lambda native: sent_at_call.append(native.sent)

        RequestLifecycle(provider, URI, RequestOptions(cookie_jar=jar))

        jar.add_cookies.assert_called_once_with(factory.last)
        assert sent_at_call == [False]

    @pytest.mark.asyncio
    async def test_parse_cookies_once_on_headers(self, provider, factory):
        """Test that Set-Cookie values are parsed exactly once."""
        jar = Mock(spec=CookieJar)
        RequestLifecycle(provider, URI, RequestOptions(cookie_jar=jar))
        native = factory.last

        native.receive_headers(200, [("Set-Cookie", "io=abc"), ("Set-Cookie", "lang=en")])
        jar.parse_cookies.assert_called_once_with(["io=abc", "lang=en"])

        native.receive_body("hello")
        native.finish()
        jar.parse_cookies.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_parse_without_headers(self, provider, factory, run_pending):
        """Test that a failure before any response does not parse cookies."""
        jar = Mock(spec=CookieJar)
        RequestLifecycle(provider, URI, RequestOptions(cookie_jar=jar))

        factory.last.fail()
        await run_pending()

        jar.parse_cookies.assert_not_called()

    @pytest.mark.asyncio
    async def test_cookies_round_trip_through_jar(self, provider, factory):
        """Test that cookies set by one response are sent on the next request."""
        jar = CookieJar()
        RequestLifecycle(provider, URI, RequestOptions(cookie_jar=jar))
        factory.last.respond(200, "ok", headers=[("Set-Cookie", "io=abc; Path=/")])

        RequestLifecycle(provider, URI, RequestOptions(cookie_jar=jar))

        assert factory.last.get_request_header("cookie") == "io=abc"


class TestHandlers:
    """Test outcome subscription."""

    @pytest.mark.asyncio
    async def test_unknown_outcome(self, provider):
        """Test subscribing to an unknown outcome."""
        request = RequestLifecycle(provider, URI)
        with pytest.raises(ValueError):
            request.on("close", lambda: None)

    @pytest.mark.asyncio
    async def test_off(self, provider, factory):
        """Test removing handlers."""
        request = RequestLifecycle(provider, URI)
        calls = []
        handler = calls.append
        request.on("data", handler).off("data", handler)

        factory.last.respond(200, "hello")

        assert calls == []
