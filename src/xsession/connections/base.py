"""
Base transport interface.

Defines the byte-stream contract the session layer needs from a network
connection. Framing and message layout belong to the codec; the transport
only moves bytes.
"""
from abc import ABC, abstractmethod
from typing import Optional

from .endpoints import Endpoint


class BaseTransport(ABC):
    """
    Abstract base class for byte-stream transports.

    One transport instance wraps one physical connection. It is opened once,
    may be upgraded to TLS once, and is closed at most once (closing twice is
    a no-op).

    Example:
        ```python
        class StreamTransport(BaseTransport):
            async def open(self, endpoint):
                self._reader, self._writer = await asyncio.open_connection(
                    endpoint.host, endpoint.port
                )
            ...
        ```
    """

    def __init__(self):
        self.endpoint: Optional[Endpoint] = None

    @abstractmethod
    async def open(self, endpoint: Endpoint) -> None:
        """
        Connect to ``endpoint``.

        The connect timeout is applied by the caller; implementations just
        await the connection.

        Raises:
            OSError: If the endpoint cannot be reached
        """
        pass

    @abstractmethod
    async def upgrade_tls(self, tls_config) -> None:
        """Upgrade an open TCP connection to TLS."""
        pass

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Send ``data``."""
        pass

    @abstractmethod
    async def read_exactly(self, size: int) -> bytes:
        """
        Read exactly ``size`` bytes.

        Raises:
            OSError: If the connection ends first
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the connection can still carry traffic."""
        pass

    @property
    def is_secure(self) -> bool:
        """Whether traffic is encrypted with TLS."""
        return False

    @property
    def is_local(self) -> bool:
        """Whether the peer is a local stream socket."""
        return self.endpoint is not None and self.endpoint.is_local
