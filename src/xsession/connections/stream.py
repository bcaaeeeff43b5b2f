"""
Default transport built on asyncio streams.
"""
import asyncio
from typing import Optional

from xsession.messages import get_logger

from .base import BaseTransport
from .endpoints import Endpoint
from .tls import create_ssl_context


class StreamTransport(BaseTransport):
    """
    TCP or local-socket transport using asyncio streams.

    TLS upgrades use ``StreamWriter.start_tls`` so the same reader and
    writer keep working after the handshake.
    """

    def __init__(self):
        super().__init__()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._secure = False
        self.logger = get_logger("xsession.transport")

    async def open(self, endpoint: Endpoint) -> None:
        if endpoint.is_local:
            self._reader, self._writer = await asyncio.open_unix_connection(
                endpoint.socket
            )
        else:
            self._reader, self._writer = await asyncio.open_connection(
                endpoint.host, endpoint.port
            )
        self.endpoint = endpoint
        self.logger.debug(f"Opened transport to {endpoint}")

    async def upgrade_tls(self, tls_config) -> None:
        context = create_ssl_context(tls_config)
        await self._writer.start_tls(context)
        self._secure = True
        self.logger.debug(f"Upgraded transport to {self.endpoint} to TLS")

    async def write(self, data: bytes) -> None:
        self._writer.write(data)
        await self._writer.drain()

    async def read_exactly(self, size: int) -> bytes:
        try:
            return await self._reader.readexactly(size)
        except asyncio.IncompleteReadError as e:
            raise ConnectionResetError(
                f"Connection to {self.endpoint} closed by the server"
            ) from e

    async def close(self) -> None:
        if self._writer is None:
            return
        writer, self._writer = self._writer, None
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError) as e:
            self.logger.debug(f"Error while closing transport: {str(e)}")

    @property
    def is_open(self) -> bool:
        return self._writer is not None and not self._writer.is_closing()

    @property
    def is_secure(self) -> bool:
        return self._secure
