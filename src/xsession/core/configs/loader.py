"""
Building configuration objects from URIs, dictionaries and YAML files.
"""
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from xsession.utility.exceptions import ConfigError

from .client_config import ClientConfig
from .connection_config import ConnectionConfig
from .options import parse_config
from .pooling_config import PoolingConfig
from .uri import parse_uri

ConnectionSource = Union[str, Dict[str, Any], ConnectionConfig]


def load_connection_config(source: ConnectionSource) -> ConnectionConfig:
    """
    Get a ConnectionConfig from a URI, an option dictionary or a config.

    Raises:
        ConfigError: If the source is invalid
    """
    if isinstance(source, ConnectionConfig):
        return source
    if isinstance(source, str):
        return parse_config(ConnectionConfig, parse_uri(source))
    if isinstance(source, dict):
        return parse_config(ConnectionConfig, source)
    raise ConfigError(
        f"Connection configuration must be a URI, a dict or a ConnectionConfig, "
        f"got {type(source).__name__}"
    )


def load_client_config(
    source: ConnectionSource,
    pooling: Optional[Union[Dict[str, Any], PoolingConfig]] = None,
) -> ClientConfig:
    """Get a ClientConfig from connection and pooling sources."""
    connection = load_connection_config(source)
    if pooling is None:
        pooling = PoolingConfig()
    elif isinstance(pooling, dict):
        pooling = parse_config(PoolingConfig, pooling)
    return ClientConfig(connection=connection, pooling=pooling)


def load_config_file(path: Union[str, Path]) -> ClientConfig:
    """
    Load a ClientConfig from a YAML file.

    The file holds a ``connection`` entry (URI string or mapping) and an
    optional ``pooling`` mapping::

        connection: mysqlx://app@db.internal:33060/orders
        pooling:
          max_size: 10
          queue_timeout: 2000

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {str(e)}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")

    unknown = set(data) - {"connection", "pooling"}
    if unknown:
        raise ConfigError(
            f"Unknown top-level keys in {path}: {', '.join(sorted(unknown))}"
        )

    return load_client_config(data.get("connection") or {}, data.get("pooling"))
