"""
Mock network implementations for testing.

This module provides mock implementations of NetworkStream and NetworkBackend
that serve canned HTTP responses without touching the network.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from .backend import NetworkBackend
from .stream import NetworkStream


class MockNetworkStream(NetworkStream):
    """
    Mock network stream for testing.

    Reads return the canned ``data``; writes are recorded. When ``hang``
    is set, reads past the end of the data block until the stream is
    closed, simulating a long-poll the server never answers.
    """

    def __init__(self, data: bytes = b"", hang: bool = False):
        self._data = data
        self._position = 0
        self._closed = False
        self._hang = hang
        self._closed_event = asyncio.Event()
        self._extra_info: Dict[str, Any] = {}
        self._write_buffer: List[bytes] = []

    async def read(self, max_bytes: Optional[int] = None) -> bytes:
        if self._closed:
            raise RuntimeError("Stream is closed")

        if self._position >= len(self._data):
            if self._hang:
                await self._closed_event.wait()
            return b""

        if max_bytes is None:
            end = len(self._data)
        else:
            end = min(self._position + max_bytes, len(self._data))
        result = self._data[self._position:end]
        self._position = end
        return result

    async def write(self, data: bytes) -> None:
        if self._closed:
            raise RuntimeError("Stream is closed")
        self._write_buffer.append(data)

    async def aclose(self) -> None:
        self._closed = True
        self._closed_event.set()

    def get_extra_info(self, name: str) -> Optional[Any]:
        return self._extra_info.get(name)

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def written_data(self) -> bytes:
        """Get all data that was written to the stream."""
        return b"".join(self._write_buffer)

    def set_extra_info(self, name: str, value: Any) -> None:
        self._extra_info[name] = value

    def add_data(self, data: bytes) -> None:
        self._data += data


class MockNetworkBackend(NetworkBackend):
    """
    Mock network backend for testing.

    Each ``connect_tcp`` call opens a fresh MockNetworkStream primed with
    the response registered for the host and port.
    """

    def __init__(self):
        self._responses: Dict[Tuple[str, int], bytes] = {}
        self._errors: Dict[Tuple[str, int], Exception] = {}
        self._hanging: set = set()
        self.streams: List[MockNetworkStream] = []

    def set_response(self, host: str, port: int, data: bytes) -> None:
        """Serve ``data`` to every connection made to host:port."""
        self._responses[(host, port)] = data

    def set_error(self, host: str, port: int, error: Exception) -> None:
        """Make connections to host:port fail with ``error``."""
        self._errors[(host, port)] = error

    def set_hanging(self, host: str, port: int) -> None:
        """Make connections to host:port never answer."""
        self._hanging.add((host, port))

    async def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
    ) -> MockNetworkStream:
        key = (host, port)
        if key in self._errors:
            raise self._errors[key]

        stream = MockNetworkStream(self._responses.get(key, b""), hang=key in self._hanging)
        stream.set_extra_info("peername", key)
        stream.set_extra_info("sockname", ("127.0.0.1", 12345))
        self.streams.append(stream)
        return stream

    async def connect_tls(
        self,
        stream: MockNetworkStream,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        alpn_protocols: Optional[List[str]] = None,
    ) -> MockNetworkStream:
        stream.set_extra_info("ssl_object", True)
        stream.set_extra_info(
            "selected_alpn_protocol",
            alpn_protocols[0] if alpn_protocols else "http/1.1",
        )
        return stream

    @property
    def last_stream(self) -> Optional[MockNetworkStream]:
        return self.streams[-1] if self.streams else None

    def reset(self) -> None:
        """Reset all canned responses and recorded streams."""
        self._responses.clear()
        self._errors.clear()
        self._hanging.clear()
        self.streams.clear()
