"""
Capability probing for native request backends.

The probe runs once: it tries to build a request with the preferred
backend and, failing that, with the legacy one. The resulting flags are
immutable and shared by every transport using the same provider.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Optional

from .exceptions import CreationError
from .native import H11RequestFactory, LegacyRequestFactory, NativeRequest, RequestFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capabilities:
    """
    What the host's request backends can do.

    Attributes:
        has_native: The preferred backend could be constructed.
        supports_binary: Binary payloads can be exchanged.
        supports_cors: Cross-origin requests are usable.
        has_legacy: The legacy backend is available as a same-origin
            fallback.
    """

    has_native: bool
    supports_binary: bool
    supports_cors: bool
    has_legacy: bool = False

    def is_usable(self, xdomain: bool) -> bool:
        """Whether a polling transport can run against such a target."""
        if xdomain:
            return self.has_native and self.supports_cors
        return self.has_native or self.has_legacy


def probe_capabilities(
    preferred: RequestFactory,
    legacy: Optional[RequestFactory] = None,
) -> Capabilities:
    """
    Probe the request backends once.

    Args:
        preferred: Factory of the preferred backend
        legacy: Optional same-origin fallback factory

    Returns:
        The detected capabilities
    """
    has_native = supports_binary = supports_cors = has_legacy = False

    try:
        request = preferred.create()
    except Exception as e:
        logger.debug(f"Preferred request backend {preferred.name!r} unavailable: {e!r}")
    else:
        has_native = True
        supports_binary = request.supports_binary
        supports_cors = request.supports_credentials

    if not has_native and legacy is not None:
        try:
            legacy.create()
        except Exception as e:
            logger.debug(f"Legacy request backend {legacy.name!r} unavailable: {e!r}")
        else:
            has_legacy = True

    capabilities = Capabilities(
        has_native=has_native,
        supports_binary=supports_binary,
        supports_cors=supports_cors,
        has_legacy=has_legacy,
    )
    logger.debug(f"Probed request capabilities: {capabilities}")
    return capabilities


class RequestProvider:
    """
    Creates native requests from the backend the capabilities allow.

    Cross-origin requests only ever use the preferred backend, and only
    when it supports credentials. Same-origin requests fall back to the
    legacy backend when the preferred one cannot be built.
    """

    def __init__(
        self,
        preferred: RequestFactory,
        legacy: Optional[RequestFactory] = None,
        capabilities: Optional[Capabilities] = None,
    ) -> None:
        self.preferred = preferred
        self.legacy = legacy
        self.capabilities = capabilities or probe_capabilities(preferred, legacy)

    def is_usable(self, xdomain: bool) -> bool:
        return self.capabilities.is_usable(xdomain)

    def __call__(self, xdomain: bool) -> NativeRequest:
        """
        Create a native request.

        Raises:
            CreationError: If no backend can serve the request.
        """
        error: Optional[Exception] = None

        if self.capabilities.has_native and (not xdomain or self.capabilities.supports_cors):
            try:
                return self.preferred.create()
            except Exception as e:
                logger.debug(f"Preferred request backend failed: {e!r}")
                error = e

        if not xdomain and self.legacy is not None:
            try:
                return self.legacy.create()
            except Exception as e:
                logger.debug(f"Legacy request backend failed: {e!r}")
                error = e

        kind = "cross-origin" if xdomain else "same-origin"
        raise CreationError(f"No native request available for {kind} use", cause=error)


@functools.lru_cache(maxsize=None)
def default_provider() -> RequestProvider:
    """The process-wide provider over the built-in backends, probed once."""
    return RequestProvider(H11RequestFactory(), LegacyRequestFactory())
