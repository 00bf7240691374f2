from __future__ import annotations
from typing import Any
import logging

from .codecs import Codec
from .message import Peer
from .transport import Transport
from .wire import encode_frame

logger = logging.getLogger(__name__)

def forward(transport: Transport, codec: Codec, is_request: bool, value: Any,
            from_peer: Peer, to_peer: Peer) -> bytes:
    """
    Re-frame `value` under from_peer's tid and send it once to `to_peer`.

    Stateless: the transaction table is never consulted, so the tid is not
    checked against requests the relaying endpoint has in flight itself.
    No retry; the caller owns any follow-up.
    """
    if from_peer.tid is None:
        raise ValueError("from_peer has no tid; forward only frames that were received")
    frame = encode_frame(from_peer.tid, is_request, value, codec)
    logger.debug("forwarding %s tid %d from %s:%d to %s:%d",
                 "request" if is_request else "response", from_peer.tid,
                 from_peer.host, from_peer.port, to_peer.host, to_peer.port)
    transport.send(frame, to_peer.host, to_peer.port)
    return frame
