"""
Configuration primitives for polling_core.

This module defines the immutable structures describing an execution
context's origin, a polling transport's options and a single request's
options. Every option a request consumes is enumerated here.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, FrozenSet, NamedTuple, Optional, Union
from urllib.parse import urlparse

from .network.utils import default_port, normalize_host

if TYPE_CHECKING:
    from .cookies import CookieJarProtocol

Payload = Union[str, bytes]

# 1223 is how some older hosts report a 204 No Content response.
SUCCESS_STATUSES: FrozenSet[int] = frozenset({200, 1223})

METHODS = ("GET", "POST")


class Origin(NamedTuple):
    """Scheme, hostname and (possibly unspecified) port of a context or target."""
    scheme: str
    hostname: str
    port: Optional[int] = None

    @classmethod
    def from_url(cls, url: str) -> "Origin":
        """Create an Origin from a URL string, keeping an absent port absent."""
        parsed = urlparse(url)
        if not parsed.hostname:
            raise ValueError(f"No hostname found in URL: {url!r}")
        return cls(
            scheme=parsed.scheme or "http",
            hostname=normalize_host(parsed.hostname),
            port=parsed.port,
        )

    @property
    def is_secure(self) -> bool:
        return self.scheme in ("https", "wss")

    @property
    def effective_port(self) -> int:
        """The explicit port, or 443/80 depending on the scheme."""
        if self.port is not None:
            return self.port
        return default_port(self.scheme)

    def is_same_host(self, other: "Origin") -> bool:
        """Compare hostname and effective port."""
        return (
            normalize_host(self.hostname) == normalize_host(other.hostname)
            and self.effective_port == other.effective_port
        )


@dataclass(frozen=True)
class PollingOptions:
    """
    Options of a PollingTransport.

    Attributes:
        with_credentials: Send credentials cross-origin and keep cookies
            in a transport-owned cookie jar.
        extra_headers: Headers added to every request.
        request_timeout: Per-request timeout in seconds, enforced by
            the native request.
        force_base64: Never use binary payloads, even when supported.
    """

    with_credentials: bool = False
    extra_headers: Dict[str, str] = field(default_factory=dict)
    request_timeout: Optional[float] = None
    force_base64: bool = False

    def __post_init__(self) -> None:
        """Validate options after initialization."""
        if not isinstance(self.extra_headers, dict):
            raise ValueError("extra_headers must be a dict")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")


@dataclass(frozen=True)
class RequestOptions:
    """
    Everything a RequestLifecycle needs besides its URI.

    ``cookie_jar`` is a shared reference owned by the transport.
    """

    method: str = "GET"
    data: Optional[Payload] = None
    extra_headers: Dict[str, str] = field(default_factory=dict)
    request_timeout: Optional[float] = None
    with_credentials: bool = False
    cookie_jar: Optional["CookieJarProtocol"] = None
    xdomain: bool = False

    def __post_init__(self) -> None:
        """Validate request options after initialization."""
        if self.method not in METHODS:
            raise ValueError(f"method must be one of {METHODS}, got {self.method!r}")
        if self.data is not None and not isinstance(self.data, (str, bytes, bytearray)):
            raise ValueError("data must be str, bytes or None")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    @classmethod
    def create(
        cls,
        options: PollingOptions,
        method: str = "GET",
        data: Optional[Payload] = None,
        xdomain: bool = False,
        cookie_jar: Optional["CookieJarProtocol"] = None,
    ) -> "RequestOptions":
        """
        Create request options from a transport's options.

        Args:
            options: The transport-wide options
            method: GET for polls, POST for writes
            data: Optional payload for writes
            xdomain: Whether the target is cross-origin
            cookie_jar: The transport's cookie jar, if any

        Returns:
            New RequestOptions instance
        """
        return cls(
            method=method,
            data=data,
            extra_headers=dict(options.extra_headers),
            request_timeout=options.request_timeout,
            with_credentials=options.with_credentials,
            cookie_jar=cookie_jar,
            xdomain=xdomain,
        )
