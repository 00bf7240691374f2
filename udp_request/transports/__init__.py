from .memory import MemoryNetwork, MemoryTransport
from .udp import UdpTransport

__all__ = ["MemoryNetwork", "MemoryTransport", "UdpTransport"]
