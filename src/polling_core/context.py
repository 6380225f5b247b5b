"""
Execution contexts for polling_core.

An execution context tells the transport where it runs: the origin used
for the cross-domain check, and which termination notifications can be
subscribed to for aborting pending requests on shutdown.
"""

import atexit
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from .options import Origin

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class TerminationEvent(str, Enum):
    """Termination notifications, in order of preference."""
    SHUTDOWN = "shutdown"  # Modern: the host announces an orderly shutdown
    EXIT = "exit"          # Legacy: interpreter exit


class ExecutionContext(ABC):
    """Interface for the environment a transport runs in."""

    @property
    @abstractmethod
    def origin(self) -> Optional[Origin]:
        """The context's own origin, or None when it has none."""
        pass

    @abstractmethod
    def supports_event(self, event: TerminationEvent) -> bool:
        pass

    @abstractmethod
    def add_listener(self, event: TerminationEvent, listener: Listener) -> None:
        pass

    @abstractmethod
    def remove_listener(self, event: TerminationEvent, listener: Listener) -> None:
        pass

    @property
    def supports_termination(self) -> bool:
        """Whether any termination notification is available."""
        return self.termination_event() is not None

    def termination_event(self) -> Optional[TerminationEvent]:
        """The preferred supported termination event, modern first."""
        for event in (TerminationEvent.SHUTDOWN, TerminationEvent.EXIT):
            if self.supports_event(event):
                return event
        return None


class ProcessContext(ExecutionContext):
    """
    Context of a plain Python process.

    Only interpreter exit can be observed, through ``atexit``.
    """

    def __init__(self, origin: Optional[Origin] = None) -> None:
        self._origin = origin

    @property
    def origin(self) -> Optional[Origin]:
        return self._origin

    def supports_event(self, event: TerminationEvent) -> bool:
        return event is TerminationEvent.EXIT

    def add_listener(self, event: TerminationEvent, listener: Listener) -> None:
        if not self.supports_event(event):
            raise ValueError(f"Unsupported event: {event.value}")
        atexit.register(listener)

    def remove_listener(self, event: TerminationEvent, listener: Listener) -> None:
        if self.supports_event(event):
            atexit.unregister(listener)


class StaticContext(ExecutionContext):
    """
    Context whose origin and events are supplied by the embedder.

    The embedder calls ``dispatch`` when its own lifecycle ends, e.g.
    from an application server's shutdown handler.
    """

    def __init__(
        self,
        origin: Optional[Origin] = None,
        events: Iterable[TerminationEvent] = (TerminationEvent.SHUTDOWN, TerminationEvent.EXIT),
    ) -> None:
        self._origin = origin
        self._events = frozenset(events)
        self._listeners: Dict[TerminationEvent, List[Listener]] = {event: [] for event in self._events}

    @property
    def origin(self) -> Optional[Origin]:
        return self._origin

    def supports_event(self, event: TerminationEvent) -> bool:
        return event in self._events

    def add_listener(self, event: TerminationEvent, listener: Listener) -> None:
        if not self.supports_event(event):
            raise ValueError(f"Unsupported event: {event.value}")
        self._listeners[event].append(listener)

    def remove_listener(self, event: TerminationEvent, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: TerminationEvent) -> int:
        return len(self._listeners.get(event, []))

    def dispatch(self, event: TerminationEvent) -> None:
        """Run every listener of ``event``."""
        listeners = list(self._listeners.get(event, []))
        logger.debug(f"Dispatching {event.value} to {len(listeners)} listeners")
        for listener in listeners:
            listener()
