"""
Mock native request implementations for testing.

MockNativeRequest records everything a RequestLifecycle does to it and
lets tests drive ready-state notifications by hand, the way a host
would deliver them from its event loop.
"""

from typing import Any, Iterable, List, Optional, Tuple

from .base import Body, NativeRequest, ReadyState, RequestFactory


class MockNativeRequest(NativeRequest):
    """
    Scripted native request.

    Args:
        supports_credentials: Value reported for the credentials flag.
        supports_binary: Value reported for binary responses.
        fail_on_open: Exception raised by open().
        fail_on_send: Exception raised by send().
        fail_on_headers: Header names whose set_request_header() raises.
        fail_on_abort: Exception raised by abort().
    """

    def __init__(
        self,
        supports_credentials: bool = True,
        supports_binary: bool = True,
        fail_on_open: Optional[Exception] = None,
        fail_on_send: Optional[Exception] = None,
        fail_on_headers: Iterable[str] = (),
        fail_on_abort: Optional[Exception] = None,
    ) -> None:
        super().__init__()
        self.supports_credentials = supports_credentials
        self.supports_binary = supports_binary
        self.fail_on_open = fail_on_open
        self.fail_on_send = fail_on_send
        self.fail_on_headers = {name.lower() for name in fail_on_headers}
        self.fail_on_abort = fail_on_abort

        self.method: Optional[str] = None
        self.url: Optional[str] = None
        self.request_headers: List[Tuple[str, str]] = []
        self.sent = False
        self.sent_body: Optional[Body] = None
        self.abort_count = 0
        self._response_headers: List[Tuple[str, str]] = []
        self._response: Optional[Body] = None

    def open(self, method: str, url: str) -> None:
        if self.fail_on_open is not None:
            raise self.fail_on_open
        self.method = method
        self.url = url
        self.ready_state = ReadyState.OPENED

    def set_request_header(self, name: str, value: str) -> None:
        if name.lower() in self.fail_on_headers:
            raise ValueError(f"Refused header: {name}")
        self.request_headers.append((name, value))

    def send(self, body: Optional[Body] = None) -> None:
        if self.fail_on_send is not None:
            raise self.fail_on_send
        self.sent = True
        self.sent_body = body

    def abort(self) -> None:
        self.abort_count += 1
        if self.fail_on_abort is not None:
            raise self.fail_on_abort

    def get_response_headers(self, name: str) -> List[str]:
        wanted = name.lower()
        return [value for header, value in self._response_headers if header.lower() == wanted]

    @property
    def response(self) -> Optional[Body]:
        return self._response

    def get_request_header(self, name: str) -> Optional[str]:
        """Last value set for a request header, or None."""
        wanted = name.lower()
        for header, value in reversed(self.request_headers):
            if header.lower() == wanted:
                return value
        return None

    @property
    def aborted(self) -> bool:
        return self.abort_count > 0

    # Driving helpers

    def receive_headers(self, status: Any = 200, headers: Optional[List[Tuple[str, str]]] = None) -> None:
        """Deliver the status line and headers."""
        self.status = status
        self._response_headers = list(headers or [])
        self._set_ready_state(ReadyState.HEADERS_RECEIVED)

    def receive_body(self, body: Optional[Body]) -> None:
        """Deliver the body and move to LOADING."""
        self._response = body
        self._set_ready_state(ReadyState.LOADING)

    def finish(self) -> None:
        """Move to DONE."""
        self._set_ready_state(ReadyState.DONE)

    def respond(
        self,
        status: Any = 200,
        body: Optional[Body] = "",
        headers: Optional[List[Tuple[str, str]]] = None,
    ) -> None:
        """Deliver a full response: headers, body, then DONE."""
        self.receive_headers(status, headers)
        self.receive_body(body)
        self.finish()

    def fail(self, error: Optional[Exception] = None, timed_out: bool = False) -> None:
        """End the exchange without a response (status 0)."""
        self.status = 0
        self.error = error
        self.timed_out = timed_out
        self._set_ready_state(ReadyState.DONE)


class MockRequestFactory(RequestFactory):
    """
    Factory handing out MockNativeRequest instances.

    Args:
        error: Exception raised by create() instead of returning a request.
        **request_options: Passed to every MockNativeRequest.
    """

    name = "mock"

    def __init__(self, error: Optional[Exception] = None, **request_options: Any) -> None:
        self.error = error
        self.request_options = request_options
        self.requests: List[MockNativeRequest] = []

    def create(self) -> MockNativeRequest:
        if self.error is not None:
            raise self.error
        request = MockNativeRequest(**self.request_options)
        self.requests.append(request)
        return request

    @property
    def last(self) -> Optional[MockNativeRequest]:
        return self.requests[-1] if self.requests else None
