"""
Network stream interface for polling_core.

A NetworkStream carries the bytes of exactly one HTTP exchange issued
by a native request backend.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class NetworkStream(ABC):
    """
    Interface for network streams with async I/O operations.

    Native request backends open one stream per request, write the
    serialized request, read the response and close the stream, even
    when the request is aborted half way.
    """

    @abstractmethod
    async def read(self, max_bytes: Optional[int] = None) -> bytes:
        """
        Read data from the stream.

        Args:
            max_bytes: Maximum number of bytes to read. If None, reads
                      whatever is currently available.

        Returns:
            The data read, or b"" once the peer has closed the stream.

        Raises:
            RuntimeError: If the stream is closed.
            OSError: If a network error occurs.
        """
        pass

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """
        Write data to the stream.

        Raises:
            RuntimeError: If the stream is closed.
            OSError: If a network error occurs.
        """
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Close the stream. Closing twice is allowed."""
        pass

    @abstractmethod
    def get_extra_info(self, name: str) -> Optional[Any]:
        """
        Get extra information about the stream.

        Args:
            name: "peername", "sockname" or "ssl_object".

        Returns:
            The requested information or None if not available.
        """
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """True once aclose() has been called."""
        pass
