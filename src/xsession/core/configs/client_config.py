"""
Top-level client configuration: one connection plus pooling.
"""
from pydantic import BaseModel, ConfigDict, Field

from .connection_config import ConnectionConfig
from .pooling_config import PoolingConfig


class ClientConfig(BaseModel):
    """Configuration for a Client: how to connect and how to pool."""

    model_config = ConfigDict(extra="forbid")

    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    pooling: PoolingConfig = Field(default_factory=PoolingConfig)
