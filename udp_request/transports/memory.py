from __future__ import annotations
import errno
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ..transport import Address, Transport

logger = logging.getLogger(__name__)

EPHEMERAL_START = 49152

@dataclass
class MemoryNetwork:
    """
    In-process datagram fabric. Delivery is synchronous on the sender's
    thread; `drop` decides per datagram whether it is lost.
    """
    host: str = "127.0.0.1"
    drop: Optional[Callable[[bytes, Address, Address], bool]] = None
    sent: List[Tuple[Address, Address, bytes]] = field(default_factory=list)
    _endpoints: Dict[Address, "MemoryTransport"] = field(default_factory=dict)
    _next_port: int = EPHEMERAL_START
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def _attach(self, transport: "MemoryTransport", port: int) -> Address:
        with self._lock:
            if port == 0:
                while (self.host, self._next_port) in self._endpoints:
                    self._next_port += 1
                port = self._next_port
                self._next_port += 1
            addr = (self.host, port)
            if addr in self._endpoints:
                raise OSError(errno.EADDRINUSE, "Address already in use")
            self._endpoints[addr] = transport
            return addr

    def _detach(self, addr: Address) -> None:
        with self._lock:
            self._endpoints.pop(addr, None)

    def deliver(self, data: bytes, src: Address, dest: Address) -> None:
        self.sent.append((src, dest, data))
        if self.drop is not None and self.drop(data, src, dest):
            logger.debug("dropped %d bytes %s -> %s", len(data), src, dest)
            return
        with self._lock:
            target = self._endpoints.get(dest)
        if target is None:
            return
        target._emit_message(data, src)

    def sent_to(self, dest: Address) -> List[bytes]:
        return [data for _, d, data in self.sent if d == dest]


class MemoryTransport(Transport):
    def __init__(self, network: MemoryNetwork):
        super().__init__()
        self.network = network
        self._addr: Optional[Address] = None
        self._closed = False

    @property
    def bound(self) -> bool:
        return self._addr is not None and not self._closed

    def bind(self, port: int = 0, host: str = "0.0.0.0") -> None:
        if self._closed or self._addr is not None:
            return
        try:
            self._addr = self.network._attach(self, port)
        except OSError as err:
            self._emit_error(err)
            return
        self._emit_listening()

    def send(self, data: bytes, host: str, port: int) -> None:
        if self._closed:
            return
        if self._addr is None:
            self.bind(0)
            if self._addr is None:
                return
        self.network.deliver(bytes(data), self._addr, (host, port))

    def address(self) -> Optional[Address]:
        return self._addr if self.bound else None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._addr is not None:
            self.network._detach(self._addr)
        self._emit_close()

    def fail(self, err: OSError) -> None:
        """Inject a transport-level error, as a socket would report it."""
        self._emit_error(err)
