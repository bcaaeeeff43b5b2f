"""
Configuration for connecting to a server: endpoints, credentials and TLS.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from xsession.connections.constants import CONNECTION_DEFAULTS
from xsession.utility.errors import (
    ER_DEVAPI_BAD_CLIENT_OPTION_VALUE,
    ER_DEVAPI_BAD_CONNECTION_ATTRIBUTE,
    ER_DEVAPI_BAD_CONNECTION_PORT_RANGE,
    ER_DEVAPI_BAD_CONNECTION_TIMEOUT,
    ER_DEVAPI_BAD_TLS_OPTIONS,
    message_for,
)

from .options import OptionError

AUTH_MECHANISMS = ("PLAIN", "MYSQL41", "SHA256_MEMORY")
TLS_VERSIONS = ("TLSv1.2", "TLSv1.3")


class EndpointConfig(BaseModel):
    """A single host/port pair or local socket, with an optional priority."""

    model_config = ConfigDict(extra="forbid")

    host: Optional[str] = Field(None, description="Server host name or address")
    port: Optional[int] = Field(None, description="Server port")
    socket: Optional[str] = Field(None, description="Path to a local socket")
    priority: Optional[int] = Field(
        None, description="Failover priority, 0 (lowest) to 100 (highest)"
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        """Validate port range."""
        if v is not None and not 0 <= v <= 65536:
            raise OptionError(
                ER_DEVAPI_BAD_CONNECTION_PORT_RANGE,
                message_for(ER_DEVAPI_BAD_CONNECTION_PORT_RANGE),
            )
        return v

    @model_validator(mode="after")
    def validate_address(self):
        """Either a socket or a host, never both."""
        if self.socket and self.host:
            raise ValueError("An endpoint cannot have both a host and a socket")
        if not self.socket and not self.host:
            self.host = CONNECTION_DEFAULTS.host
        return self


class TlsConfig(BaseModel):
    """TLS options applied when upgrading a TCP connection."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True, description="Upgrade TCP connections to TLS")
    versions: Optional[List[str]] = Field(
        None, description="Allowed TLS protocol versions"
    )
    ciphersuites: Optional[List[str]] = Field(
        None, description="Allowed cipher suites (OpenSSL names)"
    )
    ca: Optional[str] = Field(None, description="Path to the CA bundle")
    crl: Optional[str] = Field(
        None, description="Path to the certificate revocation list"
    )

    @field_validator("versions")
    @classmethod
    def validate_versions(cls, v):
        """Validate TLS versions."""
        if v is None:
            return v
        invalid = [version for version in v if version not in TLS_VERSIONS]
        if invalid or not v:
            raise OptionError(
                ER_DEVAPI_BAD_CLIENT_OPTION_VALUE,
                message_for(ER_DEVAPI_BAD_CLIENT_OPTION_VALUE, "tls.versions", v),
            )
        return v

    @model_validator(mode="after")
    def validate_disabled(self):
        """Extra TLS options make no sense with TLS turned off."""
        extras = (self.versions, self.ciphersuites, self.ca, self.crl)
        if not self.enabled and any(extra is not None for extra in extras):
            raise OptionError(
                ER_DEVAPI_BAD_TLS_OPTIONS, message_for(ER_DEVAPI_BAD_TLS_OPTIONS)
            )
        return self


class ConnectionConfig(BaseModel):
    """
    Everything needed to open and authenticate one connection.

    Endpoints come either from the ``endpoints`` list (multi-host failover)
    or from the ``host``/``port``/``socket`` shorthand. Priority and SRV
    combinations are checked by ``EndpointSet`` so the same rules apply to
    endpoints built in code.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user: str = Field(default="", description="Account name")
    password: Optional[str] = Field(None, description="Account password")
    default_schema: Optional[str] = Field(
        None, alias="schema", description="Default schema for the session"
    )
    auth: Optional[str] = Field(
        None, description="Authentication mechanism (inferred when empty)"
    )
    host: Optional[str] = Field(None, description="Server host (single endpoint)")
    port: Optional[int] = Field(None, description="Server port (single endpoint)")
    socket: Optional[str] = Field(None, description="Local socket path")
    endpoints: List[EndpointConfig] = Field(
        default_factory=list, description="Candidate endpoints for failover"
    )
    connect_timeout: int = Field(
        default=CONNECTION_DEFAULTS.connect_timeout,
        description="Per-endpoint connect timeout in ms (0 disables it)",
    )
    resolve_srv: bool = Field(
        default=False, description="Resolve the host through DNS SRV records"
    )
    tls: TlsConfig = Field(default_factory=TlsConfig)
    endpoint_retry_after: int = Field(
        default=CONNECTION_DEFAULTS.endpoint_retry_after,
        ge=0,
        description="How long a failed endpoint stays demoted, in ms",
    )
    connection_attributes: Dict[str, Any] = Field(
        default_factory=dict, description="Client attributes sent to the server"
    )
    send_connection_attributes: bool = Field(
        default=True, description="Send the session_connect_attrs capability"
    )

    @field_validator("auth")
    @classmethod
    def validate_auth(cls, v):
        """Validate authentication mechanism name."""
        if v is None:
            return v
        name = v.upper()
        if name not in AUTH_MECHANISMS:
            raise OptionError(
                ER_DEVAPI_BAD_CLIENT_OPTION_VALUE,
                message_for(ER_DEVAPI_BAD_CLIENT_OPTION_VALUE, "auth", v),
            )
        return name

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        """Validate port range."""
        if v is not None and not 0 <= v <= 65536:
            raise OptionError(
                ER_DEVAPI_BAD_CONNECTION_PORT_RANGE,
                message_for(ER_DEVAPI_BAD_CONNECTION_PORT_RANGE),
            )
        return v

    @field_validator("connect_timeout", mode="before")
    @classmethod
    def validate_connect_timeout(cls, v):
        """Connect timeout must be a non-negative integer."""
        if isinstance(v, bool) or not isinstance(v, int) or v < 0:
            if isinstance(v, str) and v.isdigit():
                return int(v)
            raise OptionError(
                ER_DEVAPI_BAD_CONNECTION_TIMEOUT,
                message_for(ER_DEVAPI_BAD_CONNECTION_TIMEOUT),
            )
        return v

    @field_validator("connection_attributes")
    @classmethod
    def validate_connection_attributes(cls, v):
        """User attributes cannot use the reserved underscore prefix."""
        for name in v:
            if name.startswith("_"):
                raise OptionError(
                    ER_DEVAPI_BAD_CONNECTION_ATTRIBUTE,
                    message_for(ER_DEVAPI_BAD_CONNECTION_ATTRIBUTE, name),
                )
        return {name: "" if value is None else str(value) for name, value in v.items()}

    @model_validator(mode="after")
    def validate_endpoint_source(self):
        """Endpoint list and single-host shorthand are mutually exclusive."""
        shorthand = self.host is not None or self.socket is not None
        if self.endpoints and shorthand:
            raise ValueError(
                "Use either 'endpoints' or 'host'/'socket', not both"
            )
        return self

    def resolved_endpoints(self) -> List[EndpointConfig]:
        """Get the configured endpoints, falling back to the shorthand."""
        if self.endpoints:
            return list(self.endpoints)
        if self.socket:
            return [EndpointConfig(socket=self.socket)]
        return [EndpointConfig(host=self.host, port=self.port)]
