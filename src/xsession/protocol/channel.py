"""
Request/response exchange over a transport.
"""
from xsession.connections.base import BaseTransport
from xsession.utility.exceptions import ConnectionLostError, ServerError

from .codec import MessageCodec
from .messages import Error


class Channel:
    """
    One transport plus the codec that frames it.

    ``request`` sends a message and reads exactly one reply. Server error
    frames are raised as ServerError; any transport failure closes the
    transport and is raised as ConnectionLostError. Callers serialize their
    own request/response pairs.
    """

    def __init__(self, transport: BaseTransport, codec: MessageCodec):
        self.transport = transport
        self.codec = codec

    @property
    def is_open(self) -> bool:
        return self.transport.is_open

    @property
    def is_confidential(self) -> bool:
        """TLS or a local socket: safe for clear-text credentials."""
        return self.transport.is_secure or self.transport.is_local

    @property
    def endpoint(self):
        return self.transport.endpoint

    async def send(self, message) -> None:
        """Send ``message`` without waiting for a reply."""
        if not self.transport.is_open:
            raise ConnectionLostError()
        try:
            await self.transport.write(self.codec.encode(message))
        except OSError as e:
            await self.transport.close()
            raise ConnectionLostError(str(e) or None) from e

    async def receive(self):
        """Read one reply, raising error frames as ServerError."""
        try:
            reply = await self.codec.read_message(self.transport)
        except OSError as e:
            await self.transport.close()
            raise ConnectionLostError(str(e) or None) from e
        if isinstance(reply, Error):
            raise ServerError(reply.message, reply.code, reply.sql_state)
        return reply

    async def request(self, message):
        """Send ``message`` and return the reply."""
        await self.send(message)
        return await self.receive()

    async def close(self) -> None:
        await self.transport.close()
