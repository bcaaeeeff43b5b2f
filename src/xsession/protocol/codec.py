"""
Codec interface.
"""
from abc import ABC, abstractmethod

from xsession.connections.base import BaseTransport


class MessageCodec(ABC):
    """
    Encodes client messages to bytes and reads server messages off a
    transport.

    The session layer only depends on the message classes of
    ``xsession.protocol.messages``; a codec turns them into the wire format
    and back. ``read_message`` must return one of the server-side message
    classes, with server errors returned (not raised) as ``Error``.
    """

    @abstractmethod
    def encode(self, message) -> bytes:
        """Serialize a client message into one frame."""
        pass

    @abstractmethod
    async def read_message(self, transport: BaseTransport):
        """Read and decode one server frame from ``transport``."""
        pass
