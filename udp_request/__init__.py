"""
Public API:
- Endpoint: request/response over datagrams (tids, retries, timeouts, relaying)
- udp_request: one-liner factory for an Endpoint
- EndpointConfig: flat option set (retry, timeout, codecs, tick schedule)
- Peer, Reply, Frame: data passed to callbacks and handlers
- InboundRequest, InboundResponse, WarningEvent, FatalErrorEvent, Ready, Closed: events
- Codec, Codecs: pluggable payload encodings (binary, utf-8, json, msgpack)
- Transport: abstract class transports must implement
- TransactionTable, Scheduler, RetryPolicy: the pending-request engine
- encode_request, encode_response, parse: 2-byte header framing
"""

# Core runtime
from .endpoint import Endpoint
from .factory import udp_request
from .config import EndpointConfig

# Wire types
from .message import Frame, Kind, Peer, Reply

# Events
from .events import (
    Closed,
    FatalErrorEvent,
    InboundRequest,
    InboundResponse,
    Ready,
    WarningEvent,
)

# Errors
from .errors import (
    MalformedFrame,
    RequestCancelled,
    RequestError,
    RequestTimeout,
    TableFull,
    TransportError,
    TransportFatal,
    TransportWarning,
    UdpRequestError,
)

# Codecs & transports
from .codecs import Codec, Codecs
from .transport import Transport
from .transports import MemoryNetwork, MemoryTransport, UdpTransport

# Engine
from .table import PendingRequest, TransactionTable
from .scheduler import RetryPolicy, Scheduler

# Framing helpers
from .wire import encode_request, encode_response, parse

__all__ = [
    "Endpoint",
    "udp_request",
    "EndpointConfig",
    "Frame",
    "Kind",
    "Peer",
    "Reply",
    "Closed",
    "FatalErrorEvent",
    "InboundRequest",
    "InboundResponse",
    "Ready",
    "WarningEvent",
    "MalformedFrame",
    "RequestCancelled",
    "RequestError",
    "RequestTimeout",
    "TableFull",
    "TransportError",
    "TransportFatal",
    "TransportWarning",
    "UdpRequestError",
    "Codec",
    "Codecs",
    "Transport",
    "MemoryNetwork",
    "MemoryTransport",
    "UdpTransport",
    "PendingRequest",
    "TransactionTable",
    "RetryPolicy",
    "Scheduler",
    "encode_request",
    "encode_response",
    "parse",
]

__version__ = "0.1.0"
