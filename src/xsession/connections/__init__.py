"""
Connection management for xsession.

Key components:
- Endpoint, EndpointSet: Candidate servers and their trial order
- ConnectionEstablisher: Opens a transport to the first reachable endpoint
- BaseTransport, StreamTransport: Byte-stream transports
- ConnectionPool: Async session pool
- SessionFactory (connections.factory): Builds authenticated sessions
"""
from .base import BaseTransport
from .constants import get_connection_defaults, get_pooling_defaults
from .endpoints import Endpoint, EndpointSet, SrvRecord, SrvResolver
from .establisher import ConnectionEstablisher
from .pool import ConnectionPool
from .stream import StreamTransport

__all__ = [
    "BaseTransport",
    "ConnectionEstablisher",
    "ConnectionPool",
    "Endpoint",
    "EndpointSet",
    "SrvRecord",
    "SrvResolver",
    "StreamTransport",
    "get_connection_defaults",
    "get_pooling_defaults",
]
