"""
Configuration models for xsession.

All models are pydantic models; invalid options surface as ConfigError.
"""
from .client_config import ClientConfig
from .connection_config import ConnectionConfig, EndpointConfig, TlsConfig
from .loader import load_client_config, load_config_file, load_connection_config
from .options import OptionError, parse_config
from .pooling_config import PoolingConfig
from .uri import parse_uri

__all__ = [
    "ClientConfig",
    "ConnectionConfig",
    "EndpointConfig",
    "OptionError",
    "PoolingConfig",
    "TlsConfig",
    "load_client_config",
    "load_config_file",
    "load_connection_config",
    "parse_config",
    "parse_uri",
]
