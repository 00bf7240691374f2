from __future__ import annotations
import logging
import socket
import threading
from typing import Optional

from ..transport import Address, Transport

logger = logging.getLogger(__name__)

class UdpTransport(Transport):
    """Transport over a plain UDP socket.

    Mapping:
    - one frame per datagram, sent with sendto()
    - a daemon thread blocks in recvfrom() with a short timeout so close()
      can stop it, and hands every datagram to the message callbacks

    A socket passed in is only closed by close() when owns_socket is True.
    Sending on an unbound transport binds it to an ephemeral port first so
    replies have somewhere to land.
    """

    def __init__(self, sock: Optional[socket.socket] = None, *,
                 owns_socket: Optional[bool] = None,
                 recv_timeout: float = 0.1, bufsize: int = 65535):
        super().__init__()
        self._sock = sock
        self._owns_socket = (sock is None) if owns_socket is None else owns_socket
        self._recv_timeout = recv_timeout
        self._bufsize = bufsize
        self._running = False
        self._closed = False
        self._lock = threading.Lock()
        self._rx_thread: Optional[threading.Thread] = None
        self._saved_timeout: Optional[float] = None

    @property
    def bound(self) -> bool:
        if self._sock is None or self._closed:
            return False
        try:
            return self._sock.getsockname()[1] != 0
        except OSError:
            return False

    def bind(self, port: int = 0, host: str = "0.0.0.0") -> None:
        if self._closed:
            return
        if self._sock is None:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        if not self.bound:
            try:
                self._sock.bind((host, port))
            except OSError as err:
                logger.debug("bind to %s:%d failed: %s", host, port, err)
                self._emit_error(err)
                return
        self.start()

    def start(self) -> None:
        with self._lock:
            if self._running or self._closed or not self.bound:
                return
            self._running = True
            self._saved_timeout = self._sock.gettimeout()
            self._sock.settimeout(self._recv_timeout)
            self._rx_thread = threading.Thread(target=self._rx_loop, name="udp-request-rx", daemon=True)
            self._rx_thread.start()
        logger.debug("listening on %s:%d", *self._sock.getsockname()[:2])
        self._emit_listening()

    def send(self, data: bytes, host: str, port: int) -> None:
        if self._closed:
            return
        if not self._running:
            self.bind(0)
            if not self._running:
                return
        try:
            self._sock.sendto(data, (host, port))
        except OSError as err:
            self._emit_error(err)

    def address(self) -> Optional[Address]:
        if not self.bound:
            return None
        host, port = self._sock.getsockname()[:2]
        return host, port

    def _rx_loop(self) -> None:
        while self._running:
            try:
                data, addr = self._sock.recvfrom(self._bufsize)
            except TimeoutError:
                continue
            except OSError as err:
                if not self._running or self._sock.fileno() == -1:
                    break
                self._emit_error(err)
                continue
            try:
                self._emit_message(data, (addr[0], addr[1]))
            except Exception:
                logger.exception("datagram handler failed for %s:%d", addr[0], addr[1])

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._running = False
            thread, self._rx_thread = self._rx_thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._recv_timeout * 10)
        if self._sock is not None:
            if self._owns_socket:
                self._sock.close()
            elif thread is not None:
                # hand a borrowed socket back in the blocking mode it came in
                self._sock.settimeout(self._saved_timeout)
        self._emit_close()

    def __del__(self):
        if getattr(self, "_owns_socket", False) and getattr(self, "_sock", None) is not None:
            try:
                self._sock.close()
            except OSError:
                pass
