"""
Tests for SessionFactory: the handshake from endpoint choice to a session.
"""
import pytest

from fakes import FakeServer
from xsession.connections import SrvRecord, SrvResolver
from xsession.connections.factory import SessionFactory, client_attributes
from xsession.core.configs import load_connection_config
from xsession.utility.exceptions import (
    AuthenticationError,
    ConfigError,
    ConnectionFailedError,
    ServerError,
)


class MockResolver(SrvResolver):
    """Resolver returning canned records."""

    def __init__(self, records):
        self.records = records
        self.lookups = []

    async def resolve(self, name):
        self.lookups.append(name)
        return self.records


def make_factory(network, codec, options, **kwargs):
    config = load_connection_config(options)
    return SessionFactory(config, codec, transport_factory=network.transport, **kwargs)


class TestHandshake:
    """Test the message sequence of a new connection."""

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_tls_attributes_then_auth(self, network, codec, connection_options):
        """Test the full handshake over TCP with TLS."""
        server = network.add("db1:33060")
        factory = make_factory(network, codec, connection_options)

        session = await factory.create_session()

        assert server.kinds() == [
            "CapabilitiesSet",
            "CapabilitiesSet",
            "CapabilitiesGet",
            "AuthenticateStart",
        ]
        assert server.received[0].capabilities == {"tls": True}
        assert session.channel.transport.is_secure
        assert session.auth_mechanism.name == "PLAIN"
        assert session.is_open
        assert str(session.endpoint) == "db1:33060"

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_connection_attributes(self, network, codec, connection_options):
        server = network.add("db1:33060")
        connection_options["connection_attributes"] = {"app": "orders"}
        factory = make_factory(network, codec, connection_options)

        await factory.create_session()

        attributes = server.received[1].capabilities["session_connect_attrs"]
        assert attributes["app"] == "orders"
        assert attributes["_client_name"] == "xsession"
        assert set(client_attributes()) <= set(attributes)

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_attributes_can_be_turned_off(
        self, network, codec, connection_options
    ):
        server = network.add("db1:33060")
        connection_options["send_connection_attributes"] = False
        factory = make_factory(network, codec, connection_options)

        await factory.create_session()

        assert server.kinds().count("CapabilitiesSet") == 1

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_tls_disabled_uses_mysql41(self, network, codec, connection_options):
        server = network.add("db1:33060")
        connection_options["tls"] = {"enabled": False}
        factory = make_factory(network, codec, connection_options)

        session = await factory.create_session()

        assert not session.channel.transport.is_secure
        assert session.auth_mechanism.name == "MYSQL41"
        assert {"tls": True} not in [
            getattr(m, "capabilities", None) for m in server.received
        ]

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_local_socket_skips_tls(self, network, codec):
        """Test that local sockets are confidential without TLS."""
        server = network.add("/tmp/mysqlx.sock")
        options = {"user": "app", "password": "pw", "socket": "/tmp/mysqlx.sock"}
        factory = make_factory(network, codec, options)

        session = await factory.create_session()

        assert server.kinds()[0] == "CapabilitiesSet"
        assert "tls" not in server.received[0].capabilities
        assert session.auth_mechanism.name == "PLAIN"

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_server_without_tls(self, network, codec, connection_options):
        network.add("db1:33060", FakeServer(tls_supported=False))
        factory = make_factory(network, codec, connection_options)

        with pytest.raises(ConfigError) as exc_info:
            await factory.create_session()

        assert exc_info.value.code == 4018
        assert str(exc_info.value) == "The server does not support TLS."
        assert not network.transports[0].is_open


class TestCapabilityRetry:
    """Test reconnecting without capabilities the server does not know."""

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_unknown_attributes_capability(
        self, network, codec, connection_options
    ):
        server = network.add(
            "db1:33060", FakeServer(unknown_capabilities=["session_connect_attrs"])
        )
        factory = make_factory(network, codec, connection_options)

        session = await factory.create_session()

        assert session.is_open
        assert server.connections == 2
        assert not network.transports[0].is_open

        # Later sessions skip the capability straight away
        await factory.create_session()
        assert server.connections == 3

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_gives_up_after_second_attempt(
        self, network, codec, connection_options
    ):
        """Test that a capability error on every connection is raised."""
        server = network.add("db1:33060", FakeServer(unknown_capabilities=["tls"]))
        factory = make_factory(network, codec, connection_options)

        with pytest.raises(ServerError) as exc_info:
            await factory.create_session()

        assert exc_info.value.code == 5002
        assert server.connections == 2


class TestFailover:
    """Test how connection and authentication failures are handled."""

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_next_endpoint_on_refusal(self, network, codec):
        network.refused.add("db1:33060")
        network.add("db2:33060")
        factory = make_factory(
            network,
            codec,
            "mysqlx://app:pw@[(address=db1,priority=90),(address=db2,priority=10)]",
        )

        session = await factory.create_session()

        assert session.endpoint.host == "db2"

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_auth_failure_does_not_fail_over(self, network, codec):
        """Test that rejected credentials are not tried on other servers."""
        network.add("db1:33060", FakeServer(accept=[]))
        other = network.add("db2:33060")
        factory = make_factory(
            network,
            codec,
            "mysqlx://app:pw@[(address=db1,priority=90),(address=db2,priority=10)]",
        )

        with pytest.raises(AuthenticationError):
            await factory.create_session()

        assert other.connections == 0
        assert network.attempts == ["db1:33060"]

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_no_endpoint_reachable(self, network, codec):
        factory = make_factory(network, codec, "mysqlx://app:pw@[db1,db2]")

        with pytest.raises(ConnectionFailedError) as exc_info:
            await factory.create_session()

        assert str(exc_info.value) == "Unable to connect to any of the target hosts."


class TestSrv:
    """Test SRV resolution before connecting."""

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_resolves_and_connects(self, network, codec):
        network.add("db2.example.com:33061")
        resolver = MockResolver(
            [
                SrvRecord("db1.example.com", 33060, priority=20),
                SrvRecord("db2.example.com", 33061, priority=10),
            ]
        )
        factory = make_factory(
            network, codec, "mysqlx+srv://app:pw@_mysqlx._tcp.example.com",
            srv_resolver=resolver,
        )

        session = await factory.create_session()

        assert resolver.lookups == ["_mysqlx._tcp.example.com"]
        assert str(session.endpoint) == "db2.example.com:33061"
        assert network.attempts == ["db2.example.com:33061"]

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_no_records(self, network, codec):
        factory = make_factory(
            network, codec, "mysqlx+srv://app@_mysqlx._tcp.example.com",
            srv_resolver=MockResolver([]),
        )

        with pytest.raises(ConnectionFailedError) as exc_info:
            await factory.create_session()

        assert exc_info.value.code == 4015

    def test_resolver_required(self, network, codec):
        with pytest.raises(ConfigError, match="SRV resolver"):
            make_factory(network, codec, "mysqlx+srv://app@_mysqlx._tcp.example.com")

    def test_srv_rules_checked_before_io(self, network, codec):
        with pytest.raises(ConfigError) as exc_info:
            make_factory(
                network, codec, "mysqlx+srv://app@_mysqlx._tcp.example.com:33060",
                srv_resolver=MockResolver([]),
            )

        assert exc_info.value.code == 4012
        assert network.attempts == []
