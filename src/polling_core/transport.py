"""
Long-polling HTTP transport.

PollingTransport issues one RequestLifecycle per poll or write and
forwards their outcomes to a PollingConsumer, the higher-level state
machine that decides when to poll again and how to decode frames.
"""

import asyncio
import logging
import weakref
from typing import Callable, Optional

from typing_extensions import Protocol

from .capabilities import RequestProvider, default_provider
from .context import ExecutionContext
from .cookies import CookieJar
from .exceptions import RequestError
from .lifecycle import RequestLifecycle
from .options import Origin, Payload, PollingOptions, RequestOptions
from .registry import RequestRegistry

logger = logging.getLogger(__name__)


class PollingConsumer(Protocol):
    """The polling state machine fed by a PollingTransport."""

    def on_data(self, data: Payload) -> None: ...

    def on_error(self, reason: str, context: RequestError) -> None: ...


def is_cross_domain(uri: str, context: Optional[ExecutionContext]) -> bool:
    """
    Whether ``uri`` is cross-origin for ``context``.

    Hostnames and effective ports are compared; an unspecified port
    counts as 443 for secure schemes and 80 otherwise. A context
    without an origin never makes a request cross-domain.
    """
    if context is None or context.origin is None:
        return False
    return not context.origin.is_same_host(Origin.from_url(uri))


class PollingTransport:
    """
    HTTP long-polling transport.

    ``do_poll`` issues a GET whose body is forwarded to the consumer;
    ``do_write`` issues a POST and calls back once it is flushed.
    Failures of either are forwarded as classified errors; the
    transport never retries.
    """

    name = "polling"

    POLL_ERROR = "http poll error"
    POST_ERROR = "http post error"

    def __init__(
        self,
        uri: str,
        consumer: PollingConsumer,
        options: Optional[PollingOptions] = None,
        context: Optional[ExecutionContext] = None,
        registry: Optional[RequestRegistry] = None,
        provider: Optional[RequestProvider] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            uri: Polling endpoint, query string included
            consumer: Receives data and errors
            options: Transport options
            context: Execution context; defaults to the registry's
            registry: Tracks pending requests for shutdown
            provider: Native request provider; the process-wide
                default when omitted
            loop: Event loop for requests; the running loop when omitted
        """
        self._uri = uri
        self._consumer = consumer
        self._options = options or PollingOptions()
        self._registry = registry
        if context is None and registry is not None:
            context = registry.context
        self._context = context
        self._provider = provider or default_provider()
        self._loop = loop

        self._xd = is_cross_domain(uri, context)
        self._cookie_jar = CookieJar() if self._options.with_credentials else None
        self._poll_request: Optional["weakref.ReferenceType[RequestLifecycle]"] = None

        self.supports_binary = (
            self._provider.capabilities.supports_binary and not self._options.force_base64
        )

        logger.debug(
            f"Transport {self.name!r} for {uri}: xd={self._xd}, "
            f"credentials={self._options.with_credentials}, binary={self.supports_binary}"
        )

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def xd(self) -> bool:
        """Whether the endpoint is cross-domain. Fixed at construction."""
        return self._xd

    @property
    def cookie_jar(self) -> Optional[CookieJar]:
        return self._cookie_jar

    @property
    def is_available(self) -> bool:
        """Whether the host's request backends can reach the endpoint."""
        return self._provider.is_usable(self._xd)

    @property
    def poll_request(self) -> Optional[RequestLifecycle]:
        """The in-flight poll, if it is still alive."""
        if self._poll_request is None:
            return None
        request = self._poll_request()
        if request is None or request.state.is_terminal:
            return None
        return request

    def request(self, method: str = "GET", data: Optional[Payload] = None) -> RequestLifecycle:
        """Create and send a request to the endpoint."""
        options = RequestOptions.create(
            self._options,
            method=method,
            data=data,
            xdomain=self._xd,
            cookie_jar=self._cookie_jar,
        )
        return RequestLifecycle(
            self._provider,
            self._uri,
            options,
            registry=self._registry,
            loop=self._loop,
        )

    def do_write(self, data: Payload, on_flushed: Callable[[], None]) -> RequestLifecycle:
        """
        Send data.

        Args:
            data: Encoded payload
            on_flushed: Called once the server accepted the payload

        Raises:
            ValueError: If ``data`` is binary and the transport only
                supports text
        """
        if isinstance(data, (bytes, bytearray)) and not self.supports_binary:
            raise ValueError("Binary payloads are not supported by this transport")

        request = self.request("POST", data)
        request.on("success", on_flushed)
        request.on("error", lambda error: self._consumer.on_error(self.POST_ERROR, error))
        return request

    def do_poll(self) -> RequestLifecycle:
        """Start a poll cycle."""
        logger.debug("http poll")
        if self.poll_request is not None:
            logger.debug("Starting a poll while another one is still pending")

        request = self.request()
        request.on("data", self._consumer.on_data)
        request.on("error", lambda error: self._consumer.on_error(self.POLL_ERROR, error))
        self._poll_request = weakref.ref(request)
        return request

    def abort_poll(self) -> None:
        """Abort the in-flight poll, if any."""
        request = self.poll_request
        self._poll_request = None
        if request is not None:
            request.abort()
