"""
Custom exceptions for xsession - clear, actionable error handling.

xsession uses a hierarchical exception system so callers can react to the
failure class they care about (bad options, unreachable servers, rejected
credentials, an exhausted pool) without parsing messages. Every exception
carries a stable numeric ``code``; server-reported errors keep the code and
SQL state the server sent.

Exception Hierarchy:
    XSessionError (base)
    ├── ConfigError - Bad option value or combination, raised before any I/O
    ├── ConnectionFailedError - Endpoint could not be reached
    │   ├── ConnectTimeoutError - The connect timer fired
    │   └── NoMoreHostsError - Every endpoint in the trial sequence failed
    ├── AuthenticationError - Terminal handshake failure
    ├── PoolError
    │   ├── PoolQueueTimeoutError - Waited longer than queue_timeout
    │   └── PoolClosedError - The pool was closed
    ├── ServerError - Error frame reported by the server
    ├── ConnectionLostError - Transport failed in the middle of a request
    └── SessionClosedError - Statement issued on a closed session

Usage Guidelines:
    - Always use exception chaining (`raise SpecificError(...) from e`) when
      wrapping lower level exceptions.
    - ConnectionFailedError subclasses are the only errors that move the
      establisher on to the next endpoint.
    - ServerError is passed to the caller unmodified, except for the
      prepared statement resource errors which the session absorbs.
"""
from typing import Optional

from .errors import (
    ER_DEVAPI_CONNECTION_CLOSED,
    ER_DEVAPI_POOL_CLOSED,
    ER_DEVAPI_POOL_QUEUE_TIMEOUT,
    ER_DEVAPI_SESSION_CLOSED,
    message_for,
)


class XSessionError(Exception):
    """Base exception for all xsession errors."""

    def __init__(self, message: str, code: Optional[int] = None, **kwargs):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = kwargs


class ConfigError(XSessionError):
    """Raised when there's an error in configuration."""

    pass


class ConnectionFailedError(XSessionError):
    """Connection error while opening a transport to an endpoint."""

    pass


class ConnectTimeoutError(ConnectionFailedError):
    """The connect timer fired before the endpoint answered."""

    pass


class NoMoreHostsError(ConnectionFailedError):
    """Every endpoint of the trial sequence failed."""

    def __init__(self, message: str, code: Optional[int] = None, failures=None):
        super().__init__(message, code)
        self.failures = list(failures or [])


class AuthenticationError(XSessionError):
    """Authentication handshake failed. Never retried on another endpoint."""

    pass


class PoolError(XSessionError):
    """Base exception for pool-related errors."""

    pass


class PoolQueueTimeoutError(PoolError):
    """A caller waited in the pool queue longer than its queue timeout."""

    def __init__(self, timeout_ms: int):
        super().__init__(
            message_for(ER_DEVAPI_POOL_QUEUE_TIMEOUT, timeout_ms),
            ER_DEVAPI_POOL_QUEUE_TIMEOUT,
        )
        self.timeout_ms = timeout_ms


class PoolClosedError(PoolError):
    """The pool was closed while the caller was using or waiting on it."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or message_for(ER_DEVAPI_POOL_CLOSED), ER_DEVAPI_POOL_CLOSED
        )


class ServerError(XSessionError):
    """Error frame reported by the server."""

    def __init__(self, message: str, code: int, sql_state: str = "HY000"):
        super().__init__(message, code)
        self.sql_state = sql_state

    def __str__(self) -> str:
        return f"{self.message} ({self.code}, {self.sql_state})"


class ConnectionLostError(XSessionError):
    """The transport failed while a request was in flight."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(
            message or message_for(ER_DEVAPI_CONNECTION_CLOSED),
            ER_DEVAPI_CONNECTION_CLOSED,
        )


class SessionClosedError(XSessionError):
    """A statement was issued on a session that is already closed."""

    def __init__(self):
        super().__init__(
            message_for(ER_DEVAPI_SESSION_CLOSED), ER_DEVAPI_SESSION_CLOSED
        )
