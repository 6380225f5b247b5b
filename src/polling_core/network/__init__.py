"""
Network backend components for polling_core.

This module provides the low-level networking abstractions used by
the h11 native request backend.
"""

from .backend import NetworkBackend
from .stream import NetworkStream
from .asyncio_backend import AsyncioNetworkBackend, AsyncioNetworkStream
from .mock import MockNetworkBackend, MockNetworkStream
from .utils import (
    create_ssl_context,
    default_port,
    parse_url,
    format_host_header,
    normalize_host,
)

__all__ = [
    "NetworkBackend",
    "NetworkStream",
    "AsyncioNetworkBackend",
    "AsyncioNetworkStream",
    "MockNetworkBackend",
    "MockNetworkStream",
    "create_ssl_context",
    "default_port",
    "parse_url",
    "format_host_header",
    "normalize_host",
]
