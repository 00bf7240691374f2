from __future__ import annotations
from typing import Any, Dict, Protocol as TypingProtocol

import json

import msgpack

class Codec(TypingProtocol):
    name: str
    def encode(self, value: Any, buffer: bytearray, offset: int) -> int: ...
    def decode(self, buffer: bytes, offset: int) -> Any: ...
    def encoded_length(self, value: Any) -> int: ...

def _as_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"expected bytes or str, got {type(value).__name__}")

class _BytesCodec:
    """Shared plumbing for codecs that serialise the whole value in one go."""
    name = ""

    def dumps(self, value: Any) -> bytes:
        raise NotImplementedError

    def loads(self, data: bytes) -> Any:
        raise NotImplementedError

    def encode(self, value: Any, buffer: bytearray, offset: int) -> int:
        data = self.dumps(value)
        buffer[offset:offset + len(data)] = data
        return len(data)

    def decode(self, buffer: bytes, offset: int) -> Any:
        return self.loads(bytes(buffer[offset:]))

    def encoded_length(self, value: Any) -> int:
        return len(self.dumps(value))

class BinaryCodec(_BytesCodec):
    # str goes out as utf-8, everything comes back as bytes
    name = "binary"
    def dumps(self, value: Any) -> bytes:
        return _as_bytes(value)
    def loads(self, data: bytes) -> Any:
        return data

class Utf8Codec(_BytesCodec):
    name = "utf-8"
    def dumps(self, value: Any) -> bytes:
        return _as_bytes(value)
    def loads(self, data: bytes) -> Any:
        return data.decode("utf-8")

class JSONCodec(_BytesCodec):
    name = "json"
    def dumps(self, value: Any) -> bytes:
        return json.dumps(value, separators=(",", ":")).encode("utf-8")
    def loads(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))

class MsgPackCodec(_BytesCodec):
    name = "msgpack"
    def dumps(self, value: Any) -> bytes:
        return msgpack.packb(value, use_bin_type=True)
    def loads(self, data: bytes) -> Any:
        return msgpack.unpackb(data, raw=False)

class Codecs:
    _registry: Dict[str, Codec] = {
        "binary":  BinaryCodec(),
        "utf-8":   Utf8Codec(),
        "json":    JSONCodec(),
        "msgpack": MsgPackCodec(),
    }

    @classmethod
    def get(cls, name: str) -> Codec:
        if name not in cls._registry:
            raise ValueError(f"Unknown codec: {name}")
        return cls._registry[name]

    @classmethod
    def register(cls, codec: Codec) -> None:
        cls._registry[codec.name] = codec

    @classmethod
    def resolve(cls, codec: Any) -> Codec:
        """Accept a registered name or anything shaped like a Codec."""
        if isinstance(codec, str):
            return cls.get(codec)
        for attr in ("encode", "decode", "encoded_length"):
            if not callable(getattr(codec, attr, None)):
                raise TypeError(f"codec {codec!r} has no {attr}()")
        return codec
