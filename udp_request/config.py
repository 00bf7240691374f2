from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Any, Optional, Tuple
import socket as _socket

from .codecs import Codec, Codecs
from .scheduler import DEFAULT_BACKOFF, DEFAULT_INITIAL_TICKS, RetryPolicy
from .transport import Transport

DEFAULT_TIMEOUT = 1.0     # seconds
DEFAULT_ENCODING = "binary"
DEFAULT_HOST = "0.0.0.0"

@dataclass
class EndpointConfig:
    """
    Flat option set for an Endpoint.

    - socket: pre-bound Transport or socket.socket to reuse; never closed by the endpoint
    - retry: retransmit by default (per-request `retry=` overrides)
    - timeout: base duration in seconds; drives the tick period (timeout / 4)
    - encoding / request_encoding / response_encoding: codec or registered codec name
    - tick_interval: seconds between sweeps, 0 to drive Endpoint.tick() by hand
    - initial_ticks, backoff: countdown before the first retry and between retries
    """
    socket: Optional[Any] = None
    retry: bool = False
    timeout: float = DEFAULT_TIMEOUT
    encoding: Optional[Any] = None
    request_encoding: Optional[Any] = None
    response_encoding: Optional[Any] = None
    tick_interval: Optional[float] = None
    initial_ticks: int = DEFAULT_INITIAL_TICKS
    backoff: Tuple[int, ...] = DEFAULT_BACKOFF
    host: str = DEFAULT_HOST

    def __post_init__(self) -> None:
        self.retry = bool(self.retry)
        self.backoff = tuple(int(b) for b in self.backoff)
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout!r}")
        if self.tick_interval is not None and self.tick_interval < 0:
            raise ValueError(f"tick_interval must be >= 0, got {self.tick_interval!r}")
        if self.initial_ticks < 0 or any(b < 0 for b in self.backoff):
            raise ValueError("tick counts must be >= 0")
        if self.socket is not None and not isinstance(self.socket, (Transport, _socket.socket)):
            raise TypeError(f"socket must be a Transport or socket.socket, got {type(self.socket).__name__}")

    @classmethod
    def from_options(cls, **options: Any) -> "EndpointConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise TypeError(f"unknown endpoint option(s): {', '.join(unknown)}")
        return cls(**options)

    @property
    def period(self) -> float:
        if self.tick_interval is not None:
            return self.tick_interval
        return self.timeout / 4

    @property
    def request_codec(self) -> Codec:
        return Codecs.resolve(self.request_encoding or self.encoding or DEFAULT_ENCODING)

    @property
    def response_codec(self) -> Codec:
        return Codecs.resolve(self.response_encoding or self.encoding or DEFAULT_ENCODING)

    def policy(self, retry: Optional[bool] = None) -> RetryPolicy:
        base = RetryPolicy(self.initial_ticks, self.backoff)
        enabled = self.retry if retry is None else retry
        return base if enabled else base.disabled()
