from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

Address = Tuple[str, int]

MessageHandler = Callable[[bytes, Address], None]
ErrorHandler   = Callable[[OSError], None]
Listener       = Callable[[], None]

class Transport(ABC):
    """
    Datagram endpoint contract. A transport moves whole frames; it knows
    nothing about tids or codecs. Callbacks may fire on any thread.
    """

    def __init__(self) -> None:
        self._message_handlers: List[MessageHandler] = []
        self._error_handlers: List[ErrorHandler] = []
        self._listening_handlers: List[Listener] = []
        self._close_handlers: List[Listener] = []

    @property
    @abstractmethod
    def bound(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def bind(self, port: int = 0, host: str = "0.0.0.0") -> None:
        """Bind and start delivering datagrams. Failures go to the error handlers."""
        raise NotImplementedError

    @abstractmethod
    def send(self, data: bytes, host: str, port: int) -> None:
        """Send one frame. Best effort; failures go to the error handlers."""
        raise NotImplementedError

    @abstractmethod
    def address(self) -> Optional[Address]:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    def start(self) -> None:
        """Start delivery on an endpoint that was bound elsewhere. No-op by default."""

    # ---- callbacks ----
    def on_message(self, cb: MessageHandler) -> None:
        self._message_handlers.append(cb)

    def on_error(self, cb: ErrorHandler) -> None:
        self._error_handlers.append(cb)

    def on_listening(self, cb: Listener) -> None:
        self._listening_handlers.append(cb)

    def on_close(self, cb: Listener) -> None:
        self._close_handlers.append(cb)

    def detach(self, *handlers: object) -> None:
        """Drop the given callbacks from every list (used when the owner goes away)."""
        for handlers_list in (self._message_handlers, self._error_handlers,
                              self._listening_handlers, self._close_handlers):
            handlers_list[:] = [h for h in handlers_list if h not in handlers]

    def _emit_message(self, data: bytes, addr: Address) -> None:
        for cb in list(self._message_handlers):
            cb(data, addr)

    def _emit_error(self, err: OSError) -> None:
        for cb in list(self._error_handlers):
            cb(err)

    def _emit_listening(self) -> None:
        for cb in list(self._listening_handlers):
            cb()

    def _emit_close(self) -> None:
        for cb in list(self._close_handlers):
            cb()
