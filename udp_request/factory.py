from __future__ import annotations
from typing import Any, Optional, Union
import socket

from .config import EndpointConfig
from .endpoint import Endpoint
from .transport import Transport

def udp_request(*,
                transport: Union[str, Transport, socket.socket] = "udp",
                codec: Optional[Any] = None,
                network: Optional[Any] = None,
                **options: Any) -> Endpoint:
    """
    One-liner factory:
      udp_request()                                  # fresh UDP socket, binary payloads
      udp_request(codec="json", retry=True, timeout=0.5)
      udp_request(transport="memory", network=net)   # in-process, for tests and demos
      udp_request(transport=my_socket)               # borrowed socket, never closed here

    - transport: "udp" | "memory" | Transport instance | socket.socket
    - codec: name or codec instance used for both directions unless
      request_encoding / response_encoding are given
    - network: MemoryNetwork, required for transport="memory"
    - **options: EndpointConfig fields (retry, timeout, tick_interval, ...)
    """
    if codec is not None:
        options.setdefault("encoding", codec)

    # Resolve transport
    owned: Optional[Transport] = None
    if isinstance(transport, str):
        tlabel = transport.lower()
        if tlabel == "udp":
            pass
        elif tlabel == "memory":
            if network is None:
                raise ValueError("transport='memory' needs network=MemoryNetwork()")
            from .transports.memory import MemoryTransport
            owned = MemoryTransport(network)
        else:
            raise ValueError(f"Unknown transport label: {transport}")
    else:
        # caller keeps ownership of what they hand in
        options["socket"] = transport

    config = EndpointConfig.from_options(**options)
    return Endpoint(config, transport=owned)
