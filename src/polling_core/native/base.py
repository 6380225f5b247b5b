"""
Native request interface for polling_core.

A NativeRequest is the low-level primitive a RequestLifecycle drives:
it is opened, given headers, sent once, and reports its progress by
calling ``onreadystatechange`` from the event loop. Backends differ in
how the bytes travel; the lifecycle only sees this interface.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Callable, List, Optional, Union

Body = Union[str, bytes]


def _noop() -> None:
    pass


class ReadyState(IntEnum):
    """Progress of a native request."""
    UNSENT = 0            # Created, open() not called yet
    OPENED = 1            # open() called, headers may be set
    HEADERS_RECEIVED = 2  # Status line and headers are available
    LOADING = 3           # Body is being received
    DONE = 4              # Finished, successfully or not


class NativeRequest(ABC):
    """
    Interface for native request primitives.

    Implementations call ``_set_ready_state`` on the event loop thread
    as the exchange progresses. A failed exchange ends in ``DONE`` with
    ``status`` 0 and the underlying exception in ``error``; a request
    that hit its own ``timeout`` additionally sets ``timed_out``.
    ``abort()`` stops the exchange without any further notification.
    """

    #: Whether ``with_credentials`` is honoured (cross-origin capable).
    supports_credentials = False

    #: Whether ``response_type = "arraybuffer"`` is supported.
    supports_binary = False

    def __init__(self) -> None:
        self.ready_state = ReadyState.UNSENT
        self.status: Any = 0
        self.timeout: Optional[float] = None
        self.with_credentials = False
        self.response_type = "text"
        self.timed_out = False
        self.error: Optional[Exception] = None
        self.onreadystatechange: Callable[[], None] = _noop

    @abstractmethod
    def open(self, method: str, url: str) -> None:
        """
        Prepare the request.

        Raises:
            ValueError: If the URL cannot be used.
        """
        pass

    @abstractmethod
    def set_request_header(self, name: str, value: str) -> None:
        """
        Set a request header. Only valid between open() and send().

        Raises:
            RuntimeError: If the request is not in the OPENED state.
            ValueError: If the header is not acceptable.
        """
        pass

    @abstractmethod
    def send(self, body: Optional[Body] = None) -> None:
        """
        Start the exchange. Returns immediately; progress is reported
        through ``onreadystatechange``.

        Raises:
            RuntimeError: If the request is not in the OPENED state.
        """
        pass

    @abstractmethod
    def abort(self) -> None:
        """Stop the exchange and release its resources."""
        pass

    @abstractmethod
    def get_response_headers(self, name: str) -> List[str]:
        """All values of a response header, in received order."""
        pass

    def get_response_header(self, name: str) -> Optional[str]:
        """Combined value of a response header, or None if absent."""
        values = self.get_response_headers(name)
        if not values:
            return None
        return ", ".join(values)

    @property
    @abstractmethod
    def response(self) -> Optional[Body]:
        """
        The response body once DONE: ``str`` for the "text" response
        type, ``bytes`` for "arraybuffer". None when no body is
        available.
        """
        pass

    def _set_ready_state(self, state: ReadyState) -> None:
        self.ready_state = state
        self.onreadystatechange()


class RequestFactory(ABC):
    """Creates native requests of one concrete backend."""

    name = "native"

    @abstractmethod
    def create(self) -> NativeRequest:
        """
        Create a new, unopened native request.

        Raises:
            Exception: Any failure means the backend is unusable.
        """
        pass


def encode_body(body: Optional[Body]) -> bytes:
    """Encode a request body for the wire; text is sent as UTF-8."""
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode("utf-8")
    return bytes(body)
