from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union
from enum import StrEnum

# Frame direction, carried in bit 15 of the header
class Kind(StrEnum):
    REQUEST  = "request"
    RESPONSE = "response"

@dataclass(frozen=True, slots=True)
class Peer:
    """
    Datagram address. Inbound peers also carry the tid and direction of the
    frame they arrived with, so a handler can answer with response(value, peer).
    """
    host: str
    port: int
    tid: Optional[int] = None         # set on inbound frames only
    is_request: Optional[bool] = None

    def __post_init__(self) -> None:
        if not isinstance(self.host, str):
            raise TypeError(f"host must be a str, got {type(self.host).__name__}")
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port must be an int in 0..65535, got {self.port!r}")

    @staticmethod
    def of(peer: Union["Peer", Tuple[str, int]]) -> "Peer":
        if isinstance(peer, Peer):
            return peer
        host, port = peer
        return Peer(host=host, port=int(port))

@dataclass(frozen=True, slots=True)
class Frame:
    is_request: bool
    tid: int
    payload: bytes = b""

    @property
    def kind(self) -> Kind:
        return Kind.REQUEST if self.is_request else Kind.RESPONSE

@dataclass(frozen=True, slots=True)
class Reply:
    value: Any                   # decoded response payload
    peer: Peer                   # who answered (tid, is_request filled in)
    request: Any                 # the original request value
    destination: Peer            # where the request was sent
