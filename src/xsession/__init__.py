"""
xsession - client session layer for X Protocol database servers.

Resolves endpoints with priority failover, negotiates authentication,
pools sessions and keeps per-session prepared statement state.
"""
__version__ = "0.1.0"

from xsession.client import Client, get_client, get_session  # noqa: E402
from xsession.connections import ConnectionPool, Endpoint, EndpointSet  # noqa: E402
from xsession.core.configs import (  # noqa: E402
    ClientConfig,
    ConnectionConfig,
    PoolingConfig,
)
from xsession.core.operations import Literal, Operation, Placeholder  # noqa: E402
from xsession.core.session import Session, SessionState  # noqa: E402
from xsession.utility.exceptions import (  # noqa: E402
    AuthenticationError,
    ConfigError,
    ConnectionFailedError,
    ConnectionLostError,
    ConnectTimeoutError,
    NoMoreHostsError,
    PoolClosedError,
    PoolError,
    PoolQueueTimeoutError,
    ServerError,
    SessionClosedError,
    XSessionError,
)

__all__ = [
    "AuthenticationError",
    "Client",
    "ClientConfig",
    "ConfigError",
    "ConnectionConfig",
    "ConnectionFailedError",
    "ConnectionLostError",
    "ConnectionPool",
    "ConnectTimeoutError",
    "Endpoint",
    "EndpointSet",
    "Literal",
    "NoMoreHostsError",
    "Operation",
    "Placeholder",
    "PoolClosedError",
    "PoolError",
    "PoolQueueTimeoutError",
    "PoolingConfig",
    "ServerError",
    "Session",
    "SessionClosedError",
    "SessionState",
    "XSessionError",
    "get_client",
    "get_session",
]
