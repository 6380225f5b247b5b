"""
Request lifecycle for polling_core.

This module implements RequestLifecycle, which owns one native request
from creation to exactly one terminal outcome, and releases it exactly
once.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .exceptions import CreationError, NetworkError, RequestError, TimeoutError
from .native.base import NativeRequest, ReadyState
from .options import SUCCESS_STATUSES, Payload, RequestOptions
from .registry import RequestRegistry

logger = logging.getLogger(__name__)

RequestCreator = Callable[[bool], NativeRequest]


def _noop() -> None:
    pass


class RequestState(Enum):
    """States of a polling request."""
    CREATED = "created"                    # Native request being set up
    SENT = "sent"                          # send() returned
    HEADERS_RECEIVED = "headers_received"  # Response headers seen
    COMPLETED = "completed"                # Success outcome emitted
    ERRORED = "errored"                    # Error outcome emitted
    ABORTED = "aborted"                    # Cancelled, nothing emitted

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.COMPLETED, RequestState.ERRORED, RequestState.ABORTED)


class RequestLifecycle:
    """
    One polling HTTP request.

    The native request is created and sent synchronously from the
    constructor. Failures at that point are delivered as an ``error``
    outcome on the next loop iteration, so that handlers attached right
    after construction still see them.

    Outcomes:
        data(body): the response body of a successful request, if any.
        success(): the request succeeded; always after ``data``.
        error(exc): a RequestError; CreationError or NetworkError.

    An aborted request emits nothing.
    """

    OUTCOMES = ("data", "success", "error")

    ACCEPT = "*/*"
    POST_CONTENT_TYPE = "text/plain;charset=UTF-8"

    def __init__(
        self,
        create_request: RequestCreator,
        uri: str,
        options: Optional[RequestOptions] = None,
        registry: Optional[RequestRegistry] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """
        Initialize and send the request.

        Args:
            create_request: Returns a native request given the
                cross-domain flag (a RequestProvider)
            uri: Target URI, query string included
            options: Request options; a plain GET by default
            registry: Registry tracking pending requests for shutdown
            loop: Event loop for deferred outcomes; the running loop
                by default
        """
        self._create_request = create_request
        self._uri = uri
        self._options = options or RequestOptions()
        self._registry = registry
        self._loop = loop or asyncio.get_running_loop()
        self._state = RequestState.CREATED
        self._native: Optional[NativeRequest] = None
        self._index: Optional[int] = None
        self._handlers: Dict[str, List[Callable[..., Any]]] = {name: [] for name in self.OUTCOMES}

        self._create()

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def method(self) -> str:
        return self._options.method

    @property
    def data(self) -> Optional[Payload]:
        return self._options.data

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def native(self) -> Optional[NativeRequest]:
        """The native request, or None once cleaned up."""
        return self._native

    @property
    def index(self) -> Optional[int]:
        """Registry index while registered."""
        return self._index

    def on(self, outcome: str, handler: Callable[..., Any]) -> "RequestLifecycle":
        """Subscribe ``handler`` to an outcome."""
        if outcome not in self._handlers:
            raise ValueError(f"Unknown outcome: {outcome!r}")
        self._handlers[outcome].append(handler)
        return self

    def off(self, outcome: str, handler: Optional[Callable[..., Any]] = None) -> "RequestLifecycle":
        """Unsubscribe one handler, or every handler of an outcome."""
        handlers = self._handlers.get(outcome, [])
        if handler is None:
            handlers.clear()
        elif handler in handlers:
            handlers.remove(handler)
        return self

    def abort(self) -> None:
        """
        Cancel the request.

        No outcome is emitted afterwards, even if the native request
        still reports completion. Aborting a finished request does
        nothing.
        """
        if self._state.is_terminal:
            return
        logger.debug(f"Aborting {self.method} {self._uri} in state {self._state.value}")
        self._state = RequestState.ABORTED
        self._cleanup(force=True)

    def _emit(self, outcome: str, *args: Any) -> None:
        for handler in list(self._handlers[outcome]):
            handler(*args)

    def _create(self) -> None:
        options = self._options
        try:
            native = self._native = self._create_request(options.xdomain)
            logger.debug(f"Opening {self.method}: {self._uri}")
            native.open(self.method, self._uri)
            self._set_headers(native)

            if native.supports_credentials:
                native.with_credentials = options.with_credentials

            if options.request_timeout:
                native.timeout = options.request_timeout

            native.onreadystatechange = self._on_ready_state_change

            if options.cookie_jar is not None:
                options.cookie_jar.add_cookies(native)

            logger.debug(f"Sending data {options.data!r}")
            native.send(options.data)
        except Exception as e:
            # We are still inside __init__: nobody could have subscribed
            # to "error" yet, so it must not be raised or emitted now.
            self._loop.call_soon(self._on_error, self._creation_error(e))
            return

        self._state = RequestState.SENT
        if self._registry is not None:
            self._index = self._registry.register(self)

    def _set_headers(self, native: NativeRequest) -> None:
        headers = list(self._options.extra_headers.items())
        if self.method == "POST":
            headers.append(("Content-type", self.POST_CONTENT_TYPE))
        headers.append(("Accept", self.ACCEPT))

        for name, value in headers:
            try:
                native.set_request_header(name, value)
            except Exception as e:
                logger.debug(f"Ignoring header {name!r}: {e!r}")

    def _on_ready_state_change(self) -> None:
        native = self._native
        if native is None or self._state.is_terminal:
            return

        if self._state is RequestState.SENT and self._headers_available(native):
            self._on_headers(native)

        if native.ready_state != ReadyState.DONE:
            return

        status = native.status
        if isinstance(status, int) and status in SUCCESS_STATUSES:
            self._on_load(native)
        else:
            # Deferred so that an error handler raising cannot unwind
            # into the native request's notification.
            self._loop.call_soon(self._on_error, self._network_error(native, status))

    @staticmethod
    def _headers_available(native: NativeRequest) -> bool:
        if native.ready_state in (ReadyState.HEADERS_RECEIVED, ReadyState.LOADING):
            return True
        status = native.status
        return native.ready_state == ReadyState.DONE and isinstance(status, int) and status > 0

    def _on_headers(self, native: NativeRequest) -> None:
        self._state = RequestState.HEADERS_RECEIVED
        cookie_jar = self._options.cookie_jar
        if cookie_jar is not None:
            cookie_jar.parse_cookies(native.get_response_headers("set-cookie"))

    def _on_load(self, native: NativeRequest) -> None:
        data = native.response
        self._state = RequestState.COMPLETED
        logger.debug(f"{self.method} {self._uri} completed with status {native.status}")
        try:
            if data is not None:
                self._emit("data", data)
            self._emit("success")
        finally:
            self._cleanup()

    def _on_error(self, error: RequestError) -> None:
        if self._state.is_terminal:
            return
        self._state = RequestState.ERRORED
        logger.debug(f"{self.method} {self._uri} failed: {error}")
        try:
            self._emit("error", error)
        finally:
            self._cleanup(force=True)

    def _creation_error(self, error: Exception) -> CreationError:
        if isinstance(error, CreationError):
            if error.context is None:
                error.context = self._native
            return error
        return CreationError(str(error) or type(error).__name__, cause=error, context=self._native)

    @staticmethod
    def _network_error(native: NativeRequest, status: Any) -> NetworkError:
        if not isinstance(status, int) or isinstance(status, bool):
            status = 0
        if native.timed_out:
            return TimeoutError(status, context=native, timeout=native.timeout)
        return NetworkError(status, context=native, cause=native.error)

    def _cleanup(self, force: bool = False) -> None:
        native = self._native
        if native is None:
            return

        # Late notifications from the host must not reach us any more.
        native.onreadystatechange = _noop

        if force:
            try:
                native.abort()
            except Exception as e:
                logger.debug(f"Ignoring error while aborting native request: {e!r}")

        if self._index is not None and self._registry is not None:
            self._registry.unregister(self._index)
            self._index = None

        self._native = None
