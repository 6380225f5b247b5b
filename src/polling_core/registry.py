"""
Registry of in-flight polling requests.

The registry exists only to abort every pending request when the
execution context terminates, so that no native request outlives its
host and no error is reported against a torn-down context.
"""

import itertools
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from .context import ExecutionContext, TerminationEvent

if TYPE_CHECKING:
    from .lifecycle import RequestLifecycle

logger = logging.getLogger(__name__)


class RequestRegistry:
    """
    Table of pending requests keyed by a monotonically increasing index.

    Requests are only tracked when the context supports a termination
    notification. ``start()`` subscribes ``shutdown()`` to the preferred
    notification; ``stop()`` aborts what is left and unsubscribes.
    """

    def __init__(self, context: Optional[ExecutionContext] = None) -> None:
        self._context = context
        self._requests: Dict[int, "RequestLifecycle"] = {}
        self._counter = itertools.count()
        self._event: Optional[TerminationEvent] = None

    @property
    def context(self) -> Optional[ExecutionContext]:
        return self._context

    @property
    def enabled(self) -> bool:
        """Whether requests are tracked at all."""
        return self._context is not None and self._context.supports_termination

    @property
    def is_started(self) -> bool:
        return self._event is not None

    def start(self) -> None:
        """Install the shutdown hook. Calling it again is a no-op."""
        if self._event is not None or not self.enabled:
            return
        event = self._context.termination_event()
        self._context.add_listener(event, self.shutdown)
        self._event = event
        logger.debug(f"Request registry listening for {event.value}")

    def stop(self) -> None:
        """Abort pending requests and remove the shutdown hook."""
        self.shutdown()
        if self._event is not None:
            self._context.remove_listener(self._event, self.shutdown)
            self._event = None

    def register(self, request: "RequestLifecycle") -> Optional[int]:
        """
        Track a request.

        Returns:
            The request's index, or None when the registry is disabled.
        """
        if not self.enabled:
            return None
        index = next(self._counter)
        self._requests[index] = request
        return index

    def unregister(self, index: int) -> None:
        self._requests.pop(index, None)

    def shutdown(self) -> None:
        """Abort every pending request."""
        pending = list(self._requests.values())
        if pending:
            logger.debug(f"Aborting {len(pending)} pending requests")
        for request in pending:
            request.abort()
        self._requests.clear()

    @property
    def pending(self) -> List["RequestLifecycle"]:
        return list(self._requests.values())

    def __contains__(self, request: object) -> bool:
        return any(entry is request for entry in self._requests.values())

    def __len__(self) -> int:
        return len(self._requests)
