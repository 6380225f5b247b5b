"""
h11-based native request for polling_core.

This module implements H11NativeRequest, which performs one HTTP/1.1
exchange over a NetworkStream inside an asyncio task and reports its
progress through ready-state notifications.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

import h11

from ..exceptions import ConnectionError, ProtocolError
from ..network import AsyncioNetworkBackend, NetworkBackend, NetworkStream
from ..network.utils import format_host_header, parse_url
from .base import Body, NativeRequest, ReadyState, RequestFactory, encode_body

logger = logging.getLogger(__name__)


class H11NativeRequest(NativeRequest):
    """
    Native request speaking HTTP/1.1 through h11.

    One connection is opened per request and closed when the exchange
    ends, fails or is aborted. ``timeout`` bounds the whole exchange,
    connection setup included.
    """

    supports_credentials = True
    supports_binary = True

    DEFAULT_READ_SIZE = 65536
    ALPN_PROTOCOLS = ["http/1.1"]

    def __init__(
        self,
        backend: NetworkBackend,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        super().__init__()
        self._backend = backend
        self._loop = loop
        self._method = "GET"
        self._scheme = "http"
        self._host = ""
        self._port = 80
        self._target = "/"
        self._headers: List[Tuple[str, str]] = []
        self._response_headers: List[Tuple[bytes, bytes]] = []
        self._body = bytearray()
        self._task: Optional[asyncio.Task] = None
        self._aborted = False

        # Metrics
        self._bytes_sent = 0
        self._bytes_received = 0

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
        self._check_opened()
        if not name or any(c in name for c in "\r\n: "):
            raise ValueError(f"Invalid header name: {name!r}")
        if "\r" in value or "\n" in value:
            raise ValueError(f"Invalid value for header {name!r}")
        try:
            name.encode("ascii")
            value.encode("ascii")
        except UnicodeEncodeError as e:
            raise ValueError(f"Header {name!r} is not ASCII") from e
        self._headers.append((name, value))

    def send(self, body: Optional[Body] = None) -> None:
        self._check_opened()
        loop = self._loop or asyncio.get_running_loop()
        data = b"" if self._method == "GET" else encode_body(body)
        self._task = loop.create_task(self._run(data))

    def abort(self) -> None:
        if self._aborted:
            return
        self._aborted = True
        self.status = 0
        self.ready_state = ReadyState.UNSENT
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug(f"Aborted {self._method} {self._host}:{self._port}{self._target}")

    def get_response_headers(self, name: str) -> List[str]:
        wanted = name.lower().encode("latin-1")
        return [
            value.decode("latin-1")
            for header_name, value in self._response_headers
            if header_name.lower() == wanted
        ]

    @property
    def response(self) -> Optional[Body]:
        if self.ready_state != ReadyState.DONE:
            return None
        data = bytes(self._body)
        if self.response_type == "arraybuffer":
            return data
        return data.decode("utf-8", errors="replace")

    @property
    def metrics(self) -> dict:
        return {
            "bytes_sent": self._bytes_sent,
            "bytes_received": self._bytes_received,
        }

    def _check_opened(self) -> None:
        if self.ready_state != ReadyState.OPENED or self._task is not None:
            raise RuntimeError("Request is not in the OPENED state")

    async def _run(self, data: bytes) -> None:
        try:
            if self.timeout:
                await asyncio.wait_for(self._exchange(data), timeout=self.timeout)
            else:
                await self._exchange(data)
        except asyncio.TimeoutError as e:
            # asyncio.TimeoutError is an OSError on current interpreters,
            # so it has to be matched first.
            self.timed_out = True
            self._fail(e)
            return
        except Exception as e:
            # Socket, TLS and h11 errors alike end the exchange with status 0.
            self._fail(e)
            return

        if self._aborted:
            return
        logger.debug(
            f"{self._method} {self._target} -> {self.status} "
            f"({self._bytes_received} bytes received)"
        )
        self._set_ready_state(ReadyState.DONE)

    def _fail(self, error: Exception) -> None:
        if self._aborted:
            return
        logger.debug(f"{self._method} {self._host}:{self._port}{self._target} failed: {error!r}")
        self.error = error
        self.status = 0
        self._response_headers = []
        self._body = bytearray()
        self._set_ready_state(ReadyState.DONE)

    async def _exchange(self, data: bytes) -> None:
        try:
            stream = await self._backend.connect_tcp(self._host, self._port, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise
        except OSError as e:
            raise ConnectionError(f"Failed to connect to {self._host}:{self._port}: {e}", e)

        try:
            if self._scheme == "https":
                stream = await self._backend.connect_tls(
                    stream,
                    self._host,
                    self._port,
                    timeout=self.timeout,
                    alpn_protocols=self.ALPN_PROTOCOLS,
                )
            connection = h11.Connection(h11.CLIENT)
            await self._send_event(stream, connection, h11.Request(
                method=self._method,
                target=self._target,
                headers=self._build_headers(len(data)),
            ))
            if data:
                await self._send_event(stream, connection, h11.Data(data=data))
            await self._send_event(stream, connection, h11.EndOfMessage())
            await self._receive_response(stream, connection)
        finally:
            await stream.aclose()

    def _build_headers(self, content_length: int) -> List[Tuple[str, str]]:
        names = {name.lower() for name, _ in self._headers}
        headers = []
        if "host" not in names:
            headers.append(("Host", format_host_header(self._host, self._port, self._scheme)))
        headers.extend(self._headers)
        if self._method != "GET" and "content-length" not in names:
            headers.append(("Content-Length", str(content_length)))
        return headers

    async def _send_event(
        self,
        stream: NetworkStream,
        connection: h11.Connection,
        event: h11.Event,
    ) -> None:
        data = connection.send(event)
        if data:
            await stream.write(data)
            self._bytes_sent += len(data)

    async def _receive_response(self, stream: NetworkStream, connection: h11.Connection) -> None:
        while True:
            event = connection.next_event()

            if event is h11.NEED_DATA:
                data = await stream.read(self.DEFAULT_READ_SIZE)
                connection.receive_data(data)
                self._bytes_received += len(data)
                continue

            if isinstance(event, h11.InformationalResponse):
                continue

            if isinstance(event, h11.Response):
                self.status = event.status_code
                self._response_headers = list(event.headers)
                self._set_ready_state(ReadyState.HEADERS_RECEIVED)
                if self._aborted:
                    return
                continue

            if isinstance(event, h11.Data):
                if self.ready_state != ReadyState.LOADING:
                    self._set_ready_state(ReadyState.LOADING)
                    if self._aborted:
                        return
                self._body += event.data
                continue

            if isinstance(event, h11.EndOfMessage):
                return

            if isinstance(event, h11.ConnectionClosed):
                raise ProtocolError("Connection closed by server")


class H11RequestFactory(RequestFactory):
    """Creates H11NativeRequest instances sharing one network backend."""

    name = "h11"

    def __init__(self, backend: Optional[NetworkBackend] = None) -> None:
        self._backend = backend or AsyncioNetworkBackend()

    def create(self) -> H11NativeRequest:
        return H11NativeRequest(self._backend)
