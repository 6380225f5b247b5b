"""
Network utilities for polling_core.

URL parsing, default ports and host normalization shared by the
native request backends and the cross-domain check.
"""

import ssl
from typing import List, Optional, Tuple
from urllib.parse import urlparse

DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


def create_ssl_context(alpn_protocols: Optional[List[str]] = None) -> ssl.SSLContext:
    """
    Create a client SSL context.

    Args:
        alpn_protocols: Optional list of ALPN protocols to negotiate

    Returns:
        Configured SSL context
    """
    context = ssl.create_default_context()
    if alpn_protocols:
        context.set_alpn_protocols(alpn_protocols)

    context.options |= ssl.OP_NO_COMPRESSION
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    return context


def default_port(scheme: str) -> int:
    """
    Get the conventional port for a scheme.

    Secure schemes map to 443, everything else to 80.
    """
    return DEFAULT_PORTS.get(scheme.lower(), 80)


def parse_url(url: str) -> Tuple[str, str, int, str]:
    """
    Parse URL into components.

    Args:
        url: URL string to parse

    Returns:
        Tuple of (scheme, host, port, target) where target is the path
        plus query string, as sent on the request line.

    Raises:
        ValueError: If URL is malformed
    """
    parsed = urlparse(url)

    scheme = parsed.scheme or "http"

    host = parsed.hostname or ""
    if not host:
        raise ValueError(f"No hostname found in URL: {url!r}")

    port = parsed.port
    if port is None:
        port = default_port(scheme)

    target = parsed.path or "/"
    if parsed.query:
        target += "?" + parsed.query

    return scheme, host, port, target


def format_host_header(host: str, port: int, scheme: str) -> str:
    """
    Format host header for HTTP requests.

    The port is omitted when it is the scheme's default.
    """
    if ":" in host and not host.startswith("["):
        host = f"[{host}]"
    if port == default_port(scheme):
        return host
    return f"{host}:{port}"


def normalize_host(host: str) -> str:
    """
    Normalize hostname for consistent comparison.

    Strips the trailing DNS dot and lowercases.
    """
    return host.rstrip(".").lower()
