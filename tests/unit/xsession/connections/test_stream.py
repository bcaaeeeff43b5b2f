"""
Tests for StreamTransport and TLS context construction on loopback sockets.
"""
import asyncio
import ssl

import pytest

from xsession.connections import Endpoint, StreamTransport
from xsession.connections.tls import create_ssl_context
from xsession.core.configs import TlsConfig


async def start_echo_server():
    async def handle(reader, writer):
        data = await reader.read(100)
        writer.write(data)
        await writer.drain()
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, Endpoint("127.0.0.1", port)


@pytest.mark.asyncio
@pytest.mark.timeout(10)
async def test_write_and_read():
    server, endpoint = await start_echo_server()
    transport = StreamTransport()

    await transport.open(endpoint)
    await transport.write(b"hello")
    data = await transport.read_exactly(5)

    assert data == b"hello"
    assert transport.is_open
    assert transport.endpoint == endpoint
    assert not transport.is_secure
    assert not transport.is_local

    await transport.close()
    assert not transport.is_open
    # Closing twice is a no-op
    await transport.close()

    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
@pytest.mark.timeout(10)
async def test_read_past_end_is_connection_error():
    """Test that a short read surfaces as an OSError the channel understands."""
    server, endpoint = await start_echo_server()
    transport = StreamTransport()
    await transport.open(endpoint)
    await transport.write(b"abc")

    with pytest.raises(ConnectionResetError, match="closed by the server"):
        await transport.read_exactly(10)

    await transport.close()
    server.close()
    await server.wait_closed()


@pytest.mark.asyncio
@pytest.mark.timeout(10)
async def test_refused_connection():
    listener = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
    port = listener.sockets[0].getsockname()[1]
    listener.close()
    await listener.wait_closed()

    with pytest.raises(OSError):
        await StreamTransport().open(Endpoint("127.0.0.1", port))


class TestSslContext:
    """Test SSLContext options derived from TlsConfig."""

    def test_without_ca_skips_verification(self):
        context = create_ssl_context(TlsConfig())

        assert context.verify_mode == ssl.CERT_NONE
        assert context.check_hostname is False

    def test_version_range(self):
        context = create_ssl_context(TlsConfig(versions=["TLSv1.3", "TLSv1.2"]))

        assert context.minimum_version == ssl.TLSVersion.TLSv1_2
        assert context.maximum_version == ssl.TLSVersion.TLSv1_3

    def test_single_version(self):
        context = create_ssl_context(TlsConfig(versions=["TLSv1.3"]))

        assert context.minimum_version == ssl.TLSVersion.TLSv1_3
        assert context.maximum_version == ssl.TLSVersion.TLSv1_3

    def test_missing_ca_file(self, temp_dir):
        with pytest.raises(OSError):
            create_ssl_context(TlsConfig(ca=str(temp_dir / "missing.pem")))
