"""
Native request backends for polling_core.

The preferred backend speaks HTTP/1.1 through h11; the legacy backend
falls back to http.client in a worker thread.
"""

from .base import Body, NativeRequest, ReadyState, RequestFactory, encode_body
from .h11_request import H11NativeRequest, H11RequestFactory
from .legacy import LegacyNativeRequest, LegacyRequestFactory
from .mock import MockNativeRequest, MockRequestFactory

__all__ = [
    "Body",
    "NativeRequest",
    "ReadyState",
    "RequestFactory",
    "encode_body",
    "H11NativeRequest",
    "H11RequestFactory",
    "LegacyNativeRequest",
    "LegacyRequestFactory",
    "MockNativeRequest",
    "MockRequestFactory",
]
