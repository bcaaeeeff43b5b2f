"""
Building sessions: endpoints, connection, capabilities, TLS and auth.
"""
import os
import platform
import socket
from typing import Callable, Dict, Optional, Set, Tuple

from xsession import __version__
from xsession.auth import AuthenticationNegotiator, CredentialResponder, Credentials
from xsession.core.configs import ConnectionConfig
from xsession.core.session import Session
from xsession.messages import get_logger
from xsession.protocol.channel import Channel
from xsession.protocol.codec import MessageCodec
from xsession.protocol.messages import CapabilitiesGet, CapabilitiesSet
from xsession.utility.errors import (
    ER_DEVAPI_NO_SERVER_TLS,
    ER_X_CAPABILITIES_PREPARE_FAILED,
    ER_X_CAPABILITY_NOT_FOUND,
    message_for,
)
from xsession.utility.exceptions import ConfigError, ServerError
from xsession.utility.retry import with_retry

from .base import BaseTransport
from .endpoints import EndpointSet, SrvResolver
from .establisher import ConnectionEstablisher
from .stream import StreamTransport

CLIENT_NAME = "xsession"


def _is_unknown_capability(error: Exception) -> bool:
    return isinstance(error, ServerError) and error.code == ER_X_CAPABILITY_NOT_FOUND


def client_attributes() -> Dict[str, str]:
    """Attributes describing this client process, sent on connect."""
    return {
        "_pid": str(os.getpid()),
        "_platform": platform.machine(),
        "_os": f"{platform.system()}-{platform.release()}",
        "_source_host": socket.gethostname(),
        "_client_name": CLIENT_NAME,
        "_client_version": __version__,
    }


class SessionFactory:
    """
    Turns a ConnectionConfig into authenticated sessions.

    Each new session goes through the same pipeline:
    1. Get a trial sequence from the EndpointSet (resolving SRV first when
       configured)
    2. Open a transport with the ConnectionEstablisher
    3. Negotiate capabilities: TLS upgrade on TCP, client attributes
    4. Authenticate with the AuthenticationNegotiator

    A server that does not know a capability answers with an error; the
    factory then reconnects without that capability.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        codec: MessageCodec,
        transport_factory: Callable[[], BaseTransport] = StreamTransport,
        responder: Optional[CredentialResponder] = None,
        srv_resolver: Optional[SrvResolver] = None,
        **endpoint_options,
    ):
        """
        Initialize the factory.

        Args:
            config: Validated connection configuration
            codec: Codec framing protocol messages
            transport_factory: Callable returning a new transport
            responder: Computes authentication payloads
            srv_resolver: Resolves SRV records when ``config.resolve_srv``
            **endpoint_options: Extra EndpointSet options (rng, clock)

        Raises:
            ConfigError: If the endpoint configuration is invalid
        """
        self.config = config
        self.codec = codec
        self.transport_factory = transport_factory
        self.srv_resolver = srv_resolver
        self.negotiator = AuthenticationNegotiator(responder)
        self._endpoint_options = endpoint_options
        self._unsupported_capabilities: Set[str] = set()
        self.logger = get_logger("xsession.factory")

        # Validates priorities and SRV rules before any I/O
        self.endpoints = EndpointSet.from_config(config, **endpoint_options)
        if config.resolve_srv and srv_resolver is None:
            raise ConfigError("Resolving DNS SRV records requires an SRV resolver.")

    @property
    def credentials(self) -> Credentials:
        return Credentials(
            user=self.config.user,
            password=self.config.password,
            schema=self.config.default_schema,
        )

    async def create_session(self, pool=None) -> Session:
        """
        Build a new authenticated session.

        Raises:
            ConnectionFailedError: If no endpoint could be reached
            AuthenticationError: If the handshake was rejected
        """
        endpoints = await self._endpoint_set()
        channel, mechanism = await self._open_channel(endpoints)
        session = Session(channel, mechanism, pool=pool)
        self.logger.debug(
            f"Session {session.id} authenticated on {channel.endpoint} "
            f"with {mechanism.name}"
        )
        return session

    async def create_pooled_session(self, pool) -> Session:
        """Session factory hook for ConnectionPool."""
        return await self.create_session(pool=pool)

    async def _endpoint_set(self) -> EndpointSet:
        if not self.config.resolve_srv:
            return self.endpoints
        name = self.endpoints.endpoints[0].host
        records = await self.srv_resolver.resolve(name)
        options = dict(self._endpoint_options)
        options.setdefault("retry_after", self.config.endpoint_retry_after)
        return EndpointSet.from_srv_records(name, records, **options)

    @with_retry(retries=2, retry_if_func=_is_unknown_capability)
    async def _open_channel(self, endpoints: EndpointSet) -> Tuple[Channel, object]:
        establisher = ConnectionEstablisher(self.transport_factory, endpoints)
        transport = await establisher.connect(
            endpoints.trial_sequence(), self.config.connect_timeout
        )
        channel = Channel(transport, self.codec)
        try:
            await self._negotiate_tls(channel)
            await self._send_attributes(channel)
            capabilities = await channel.request(CapabilitiesGet())
            mechanism = await self.negotiator.authenticate(
                channel,
                self.credentials,
                self.config.auth,
                capabilities.auth_mechanisms,
            )
        except BaseException:
            await channel.close()
            raise
        return channel, mechanism

    async def _negotiate_tls(self, channel: Channel) -> None:
        tls = self.config.tls
        if not tls.enabled or channel.transport.is_local:
            return
        try:
            await channel.request(CapabilitiesSet({"tls": True}))
        except ServerError as e:
            if e.code == ER_X_CAPABILITIES_PREPARE_FAILED:
                raise ConfigError(
                    message_for(ER_DEVAPI_NO_SERVER_TLS), ER_DEVAPI_NO_SERVER_TLS
                ) from e
            raise
        await channel.transport.upgrade_tls(tls)

    async def _send_attributes(self, channel: Channel) -> None:
        name = "session_connect_attrs"
        if not self.config.send_connection_attributes:
            return
        if name in self._unsupported_capabilities:
            return
        attributes = {**client_attributes(), **self.config.connection_attributes}
        try:
            await channel.request(CapabilitiesSet({name: attributes}))
        except ServerError as e:
            if e.code == ER_X_CAPABILITY_NOT_FOUND:
                self.logger.debug(f"Server does not know '{name}', reconnecting")
                self._unsupported_capabilities.add(name)
            raise
