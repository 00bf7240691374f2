from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar
import logging
import threading

from .errors import UdpRequestError
from .message import Peer

logger = logging.getLogger(__name__)

@dataclass(frozen=True, slots=True)
class InboundRequest:
    value: Any
    peer: Peer                   # carries tid; answer with Endpoint.response(value, peer)

@dataclass(frozen=True, slots=True)
class InboundResponse:
    value: Any
    peer: Peer
    request: Any = None          # original request value, None when nothing matched

@dataclass(frozen=True, slots=True)
class WarningEvent:
    error: UdpRequestError       # MalformedFrame or TransportWarning

@dataclass(frozen=True, slots=True)
class FatalErrorEvent:
    error: UdpRequestError       # TransportFatal

@dataclass(frozen=True, slots=True)
class Ready:
    address: Optional[Tuple[str, int]]

@dataclass(frozen=True, slots=True)
class Closed:
    pass

Event = Any
E = TypeVar("E")

class EventHub:
    """Typed observer registry: zero or more handlers per event class, fire-and-forget."""

    def __init__(self) -> None:
        self._handlers: Dict[type, List[Callable[[Any], None]]] = {}
        self._lock = threading.Lock()

    def on(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def off(self, event_type: type, handler: Callable[[Any], None]) -> None:
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def emit(self, event: Event) -> int:
        """Deliver to every handler of the event's class; returns how many ran."""
        with self._lock:
            handlers = list(self._handlers.get(type(event), ()))
        for h in handlers:
            try:
                h(event)
            except Exception:
                logger.exception("%s handler %r raised", type(event).__name__, h)
        return len(handlers)
