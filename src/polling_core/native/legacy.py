"""
Legacy native request for polling_core.

LegacyNativeRequest runs a blocking ``http.client`` exchange in a worker
thread. It has no credentials flag and no binary responses, so it is
only selected for same-origin requests when the preferred backend is
unavailable.
"""

import asyncio
import http.client
import logging
from typing import List, Optional, Tuple, Type

from ..network.utils import parse_url
from .base import Body, NativeRequest, ReadyState, RequestFactory, encode_body

logger = logging.getLogger(__name__)


class LegacyNativeRequest(NativeRequest):
    """Native request backed by http.client in a worker thread."""

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        http_connection: Type[http.client.HTTPConnection] = http.client.HTTPConnection,
        https_connection: Type[http.client.HTTPConnection] = http.client.HTTPSConnection,
    ) -> None:
        super().__init__()
        self._loop = loop
        self._http_connection = http_connection
        self._https_connection = https_connection
        self._method = "GET"
        self._scheme = "http"
        self._host = ""
        self._port = 80
        self._target = "/"
        self._headers: List[Tuple[str, str]] = []
        self._response_headers: List[Tuple[str, str]] = []
        self._body = b""
        self._connection: Optional[http.client.HTTPConnection] = None
        self._task: Optional[asyncio.Task] = None
        self._aborted = False

    def open(self, method: str, url: str) -> None:
        scheme, host, port, target = parse_url(url)
        if scheme not in ("http", "https"):
            raise ValueError(f"Unsupported scheme: {scheme}")
        self._method = method.upper()
        self._scheme = scheme
        self._host = host
        self._port = port
        self._target = target
        self.ready_state = ReadyState.OPENED

    def set_request_header(self, name: str, value: str) -> None:
        if self.ready_state != ReadyState.OPENED or self._task is not None:
            raise RuntimeError("Request is not in the OPENED state")
        if not name or any(c in name for c in "\r\n: "):
            raise ValueError(f"Invalid header name: {name!r}")
        if "\r" in value or "\n" in value:
            raise ValueError(f"Invalid value for header {name!r}")
        # http.client sends names as ASCII and values as latin-1.
        try:
            name.encode("ascii")
            value.encode("latin-1")
        except UnicodeEncodeError as e:
            raise ValueError(f"Header {name!r} cannot be encoded") from e
        self._headers.append((name, value))

    def send(self, body: Optional[Body] = None) -> None:
        if self.ready_state != ReadyState.OPENED or self._task is not None:
            raise RuntimeError("Request is not in the OPENED state")
        loop = self._loop or asyncio.get_running_loop()
        data = None if self._method == "GET" else encode_body(body)
        self._task = loop.create_task(self._run(data))

    def abort(self) -> None:
        if self._aborted:
            return
        self._aborted = True
        self.status = 0
        self.ready_state = ReadyState.UNSENT
        if self._task is not None and not self._task.done():
            self._task.cancel()
        connection = self._connection
        if connection is not None:
            # The worker thread may still be blocked on the socket.
            try:
                connection.close()
            except OSError as e:
                logger.debug(f"Error closing legacy connection: {e}")

    def get_response_headers(self, name: str) -> List[str]:
        wanted = name.lower()
        return [value for header, value in self._response_headers if header.lower() == wanted]

    @property
    def response(self) -> Optional[Body]:
        if self.ready_state != ReadyState.DONE:
            return None
        return self._body.decode("utf-8", errors="replace")

    async def _run(self, data: Optional[bytes]) -> None:
        try:
            status, headers, body = await asyncio.to_thread(self._perform, data)
        except Exception as e:
            if self._aborted:
                return
            self.timed_out = isinstance(e, TimeoutError)
            self.error = e
            self.status = 0
            logger.debug(f"Legacy {self._method} {self._target} failed: {e!r}")
            self._set_ready_state(ReadyState.DONE)
            return

        if self._aborted:
            return
        self.status = status
        self._response_headers = headers
        self._set_ready_state(ReadyState.HEADERS_RECEIVED)
        if self._aborted:
            return
        self._body = body
        self._set_ready_state(ReadyState.DONE)

    def _perform(self, data: Optional[bytes]) -> Tuple[int, List[Tuple[str, str]], bytes]:
        # Runs in a worker thread.
        if self._scheme == "https":
            connection = self._https_connection(self._host, self._port, timeout=self.timeout)
        else:
            connection = self._http_connection(self._host, self._port, timeout=self.timeout)
        self._connection = connection
        try:
            connection.request(self._method, self._target, body=data, headers=dict(self._headers))
            response = connection.getresponse()
            return response.status, response.getheaders(), response.read()
        finally:
            connection.close()
            self._connection = None


class LegacyRequestFactory(RequestFactory):
    """Creates LegacyNativeRequest instances."""

    name = "legacy"

    def create(self) -> LegacyNativeRequest:
        return LegacyNativeRequest()
