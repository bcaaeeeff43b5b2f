"""
Shared constants and default configurations for connections and pooling.

Defaults are pydantic models so they are validated once and can be dumped
into option dictionaries.
"""

from pydantic import BaseModel, Field


class ConnectionDefaults(BaseModel):
    """Default connection configuration."""

    host: str = Field(default="localhost", description="Server host")
    port: int = Field(default=33060, ge=0, le=65536, description="Server port")
    connect_timeout: int = Field(
        default=10_000, ge=0, description="Per-endpoint connect timeout in ms"
    )
    endpoint_retry_after: int = Field(
        default=20_000, ge=0, description="How long a failed endpoint is demoted (ms)"
    )
    nonce_size: int = Field(default=20, description="Server challenge size in bytes")


class PoolingDefaults(BaseModel):
    """Default pooling configuration."""

    enabled: bool = Field(default=True, description="Pool sessions")
    max_size: int = Field(default=25, ge=1, description="Maximum live sessions")
    max_idle_time: int = Field(
        default=0, ge=0, description="Idle session lifetime in ms (0 = forever)"
    )
    queue_timeout: int = Field(
        default=0, ge=0, description="Wait for a free session in ms (0 = forever)"
    )
    retain_prepared_statements: bool = Field(
        default=True, description="Keep prepared statements across pool reuse"
    )


# Singleton instances for easy access
CONNECTION_DEFAULTS = ConnectionDefaults()
POOLING_DEFAULTS = PoolingDefaults()


def get_connection_defaults() -> dict:
    """
    Get default connection options.

    Returns:
        Dictionary with default connection options
    """
    return CONNECTION_DEFAULTS.model_dump()


def get_pooling_defaults() -> dict:
    """
    Get default pooling options.

    Returns:
        Dictionary with default pooling options
    """
    return POOLING_DEFAULTS.model_dump()
