from __future__ import annotations
from typing import Any, Callable, Optional, Tuple, Union
import logging
import queue
import socket
import threading

from .config import EndpointConfig
from .errors import MalformedFrame, RequestCancelled, TransportFatal, classify
from .events import (
    Closed,
    EventHub,
    FatalErrorEvent,
    InboundRequest,
    InboundResponse,
    Ready,
    WarningEvent,
)
from .message import Peer, Reply
from .relay import forward as _forward
from .scheduler import Scheduler
from .table import Completion, Reason, TransactionTable
from .transport import Address, Transport
from .transports.udp import UdpTransport
from .wire import decode_frame, encode_frame

logger = logging.getLogger(__name__)

PeerLike = Union[Peer, Tuple[str, int]]


class Endpoint:

    # Notes:
    # - request() registers a pending entry, sends once and returns the tid
    # - the scheduler retransmits the stored bytes and fails expired entries
    # - every completion runs exactly once, outside the table lock
    # - transports passed as `transport=` are owned and closed by destroy();
    #   config.socket is borrowed and only detached from

    def __init__(self, config: Optional[EndpointConfig] = None, *,
                 transport: Optional[Transport] = None, **options: Any):
        if config is not None and options:
            raise TypeError("pass either an EndpointConfig or keyword options, not both")
        self.config = config or EndpointConfig.from_options(**options)
        self.request_codec = self.config.request_codec
        self.response_codec = self.config.response_codec

        self.table = TransactionTable()
        self.events = EventHub()
        self._lock = threading.Lock()
        self._destroyed = False

        borrowed = self.config.socket
        if transport is not None:
            self.transport, self._owns_transport = transport, True
        elif isinstance(borrowed, socket.socket):
            # our wrapper, their socket
            self.transport, self._owns_transport = UdpTransport(borrowed, owns_socket=False), True
        elif borrowed is not None:
            self.transport, self._owns_transport = borrowed, False
        else:
            self.transport, self._owns_transport = UdpTransport(), True

        self._scheduler = Scheduler(self.table, self._send, self.config.period)

        self.transport.on_message(self._on_message)
        self.transport.on_error(self._on_error)
        self.transport.on_listening(self._on_listening)
        self.transport.on_close(self._on_close)

        if self.transport.bound:
            self.transport.start()
            self._scheduler.start()

    # ---- state ----
    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def inflight(self) -> int:
        return self.table.inflight

    def address(self) -> Optional[Address]:
        return self.transport.address()

    @property
    def port(self) -> Optional[int]:
        addr = self.address()
        return addr[1] if addr else None

    # ---- events ----
    def on(self, event_type: type, handler: Callable[[Any], None]) -> None:
        """Subscribe to InboundRequest, InboundResponse, WarningEvent, FatalErrorEvent, Ready or Closed."""
        self.events.on(event_type, handler)

    def off(self, event_type: type, handler: Callable[[Any], None]) -> None:
        self.events.off(event_type, handler)

    # ---- API ----
    def listen(self, port: Union[int, Callable[[], None], None] = 0,
               on_ready: Optional[Callable[[], None]] = None, host: Optional[str] = None) -> None:
        """Bind the transport. Port 0 (or None) asks for an ephemeral port."""
        if callable(port):
            port, on_ready = 0, port
        self.transport.bind(port or 0, host or self.config.host)
        self._scheduler.start()
        if on_ready is not None and self.transport.bound:
            on_ready()

    def request(self, value: Any, peer: PeerLike, callback: Optional[Completion] = None, *,
                retry: Optional[bool] = None) -> Optional[int]:
        """
        Send `value` as a request and return its tid. `callback(error, reply)`
        runs exactly once: error is None and reply a Reply on success, or
        reply is None and error a RequestTimeout / RequestCancelled.
        """
        dest = Peer.of(peer)
        with self._lock:
            if self._destroyed:
                entry = None
            else:
                entry = self.table.allocate(
                    dest, value,
                    lambda tid: encode_frame(tid, True, value, self.request_codec),
                    self.config.policy(retry),
                    callback,
                )
        if entry is None:
            if callback is not None:
                callback(RequestCancelled(), None)
            return None

        self._scheduler.start()
        logger.debug("request tid %d -> %s:%d (%d bytes)", entry.tid, dest.host, dest.port, len(entry.buffer))
        try:
            self._send(entry.buffer, dest)
        except Exception:
            # transport rejected the send outright; the caller gets the exception only
            self.table.match(entry.tid)
            raise
        return entry.tid

    def call(self, value: Any, peer: PeerLike, *, retry: Optional[bool] = None) -> Reply:
        """
        Blocking request(): waits for the outcome and raises on failure.
        Do not call from an event handler; those run on the receive thread.
        """
        outcome: "queue.Queue[Tuple[Optional[BaseException], Optional[Reply]]]" = queue.Queue(maxsize=1)
        self.request(value, peer, lambda err, reply: outcome.put((err, reply)), retry=retry)
        err, reply = outcome.get()
        if err is not None:
            raise err
        return reply

    def response(self, value: Any, peer: Peer) -> None:
        """Answer an inbound request; `peer` is the one InboundRequest carried."""
        if self._destroyed:
            return
        if peer.tid is None:
            raise ValueError("peer has no tid; respond with the peer from an InboundRequest")
        self._send(encode_frame(peer.tid, False, value, self.response_codec), peer)

    def forward(self, is_request: bool, value: Any, from_peer: Peer, to_peer: PeerLike) -> None:
        """Relay a received frame's value to another peer under the same tid."""
        if self._destroyed:
            return
        codec = self.request_codec if is_request else self.response_codec
        _forward(self.transport, codec, is_request, value, from_peer, Peer.of(to_peer))

    def forward_request(self, value: Any, from_peer: Peer, to_peer: PeerLike) -> None:
        self.forward(True, value, from_peer, to_peer)

    def forward_response(self, value: Any, from_peer: Peer, to_peer: PeerLike) -> None:
        self.forward(False, value, from_peer, to_peer)

    def cancel(self, tid: int, reason: Reason = None) -> bool:
        return self.table.cancel(tid, reason)

    def tick(self) -> None:
        """Run one scheduler sweep now (for endpoints built with tick_interval=0)."""
        self._scheduler.tick()

    def destroy(self, reason: Reason = None) -> None:
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True

        self._scheduler.stop()
        if self._owns_transport:
            self.transport.close()
        else:
            self.transport.detach(self._on_message, self._on_error, self._on_listening, self._on_close)
        drained = self.table.drain(reason)
        logger.debug("destroyed endpoint; %d pending request(s) cancelled", drained)

    def __enter__(self) -> "Endpoint":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()

    # ---- transport callbacks ----
    def _send(self, data: bytes, peer: Peer) -> None:
        self.transport.send(data, peer.host, peer.port)

    def _on_message(self, data: bytes, addr: Address) -> None:
        if self._destroyed:
            return
        try:
            frame, value = decode_frame(data, self.request_codec, self.response_codec)
        except MalformedFrame as err:
            logger.warning("dropping datagram from %s:%d: %s", addr[0], addr[1], err)
            self.events.emit(WarningEvent(err))
            return

        peer = Peer(host=addr[0], port=addr[1], tid=frame.tid, is_request=frame.is_request)
        if frame.is_request:
            self.events.emit(InboundRequest(value, peer))
            return

        entry = self.table.match(frame.tid)
        self.events.emit(InboundResponse(value, peer, entry.request if entry else None))
        if entry is None:
            logger.debug("response tid %d from %s:%d matched nothing", frame.tid, addr[0], addr[1])
            return
        entry.complete(None, Reply(value=value, peer=peer, request=entry.request, destination=entry.peer))

    def _on_error(self, cause: OSError) -> None:
        err = classify(cause)
        if isinstance(err, TransportFatal):
            logger.error("transport failure: %s", err)
            self.events.emit(FatalErrorEvent(err))
        else:
            logger.warning("transport warning: %s", err)
            self.events.emit(WarningEvent(err))

    def _on_listening(self) -> None:
        self._scheduler.start()
        self.events.emit(Ready(self.transport.address()))

    def _on_close(self) -> None:
        self.events.emit(Closed())
