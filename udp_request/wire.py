from __future__ import annotations
import struct
from typing import Any, Tuple

from .codecs import Codec
from .errors import MalformedFrame
from .message import Frame

# [2-byte big-endian header][codec payload]
# header bit 15 = request flag, bits 0-14 = tid
HEADER = struct.Struct("!H")
HEADER_SIZE = HEADER.size
REQUEST_FLAG = 0x8000
TID_MASK = 0x7FFF
MAX_TID = TID_MASK

def pack_header(tid: int, is_request: bool) -> int:
    return (REQUEST_FLAG if is_request else 0) | (tid & TID_MASK)

def _frame(tid: int, is_request: bool, payload: bytes) -> bytes:
    return HEADER.pack(pack_header(tid, is_request)) + bytes(payload)

def encode_request(tid: int, payload: bytes) -> bytes:
    return _frame(tid, True, payload)

def encode_response(tid: int, payload: bytes) -> bytes:
    return _frame(tid, False, payload)

def encode_frame(tid: int, is_request: bool, value: Any, codec: Codec) -> bytes:
    """Encode value straight into the frame buffer behind the header."""
    buf = bytearray(HEADER_SIZE + codec.encoded_length(value))
    HEADER.pack_into(buf, 0, pack_header(tid, is_request))
    codec.encode(value, buf, HEADER_SIZE)
    return bytes(buf)

def parse(data: bytes) -> Frame:
    if len(data) < HEADER_SIZE:
        raise MalformedFrame(f"datagram too small to be a frame ({len(data)} bytes)")
    (header,) = HEADER.unpack_from(data, 0)
    return Frame(
        is_request=bool(header & REQUEST_FLAG),
        tid=header & TID_MASK,
        payload=bytes(data[HEADER_SIZE:]),
    )

def decode_frame(data: bytes, request_codec: Codec, response_codec: Codec) -> Tuple[Frame, Any]:
    frame = parse(data)
    codec = request_codec if frame.is_request else response_codec
    try:
        value = codec.decode(data, HEADER_SIZE)
    except Exception as ex:
        raise MalformedFrame(f"undecodable {frame.kind} payload for tid {frame.tid}: {ex!r}") from ex
    return frame, value
