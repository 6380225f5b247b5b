"""
polling_core - HTTP long-polling transport core

Request lifecycle management for long-polling transports: one request
per poll or write, exactly one outcome per request, and bulk
cancellation of pending requests on shutdown.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .capabilities import Capabilities, RequestProvider, default_provider, probe_capabilities
from .context import ExecutionContext, ProcessContext, StaticContext, TerminationEvent
from .cookies import CookieJar, CookieJarProtocol
from .exceptions import (
    PollingError,
    RequestError,
    CreationError,
    NetworkError,
    TimeoutError,
    ConnectionError,
    ProtocolError,
)
from .lifecycle import RequestLifecycle, RequestState
from .native import NativeRequest, ReadyState, RequestFactory
from .options import Origin, PollingOptions, RequestOptions, SUCCESS_STATUSES
from .registry import RequestRegistry
from .transport import PollingConsumer, PollingTransport, is_cross_domain

__all__ = [
    "Capabilities",
    "RequestProvider",
    "default_provider",
    "probe_capabilities",
    "ExecutionContext",
    "ProcessContext",
    "StaticContext",
    "TerminationEvent",
    "CookieJar",
    "CookieJarProtocol",
    "PollingError",
    "RequestError",
    "CreationError",
    "NetworkError",
    "TimeoutError",
    "ConnectionError",
    "ProtocolError",
    "RequestLifecycle",
    "RequestState",
    "NativeRequest",
    "ReadyState",
    "RequestFactory",
    "Origin",
    "PollingOptions",
    "RequestOptions",
    "SUCCESS_STATUSES",
    "RequestRegistry",
    "PollingConsumer",
    "PollingTransport",
    "is_cross_domain",
]
