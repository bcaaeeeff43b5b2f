#!/usr/bin/env python3
"""
xsession CLI - inspect connection settings from the command line.

This module provides the `xsession` command-line interface.
"""

import asyncio
import random
import sys
from typing import Optional

import click

from xsession.connections import ConnectionEstablisher, EndpointSet, StreamTransport
from xsession.connections.constants import (
    get_connection_defaults,
    get_pooling_defaults,
)
from xsession.core.configs import load_config_file, load_connection_config
from xsession.messages import get_logger
from xsession.utility.exceptions import ConfigError, ConnectionFailedError


@click.group()
@click.version_option(package_name="xsession")
def xsession():
    """
    xsession - client session layer for X Protocol servers

    Check connection strings, configuration files and endpoint reachability.
    """
    pass


@xsession.command()
@click.argument("uri")
@click.option(
    "--attempts",
    "-n",
    default=1,
    type=int,
    help="Number of trial sequences to print (default: 1)",
)
@click.option("--seed", type=int, help="Seed for the shuffle inside priority tiers")
def endpoints(uri: str, attempts: int, seed: Optional[int]):
    """Show the order in which endpoints would be tried.

    URI: Connection string, e.g. mysqlx://user@[(address=a,priority=90),b]/db
    """
    try:
        config = load_connection_config(uri)
        endpoint_set = EndpointSet.from_config(config, rng=random.Random(seed))
    except ConfigError as e:
        click.echo(f"Configuration error: {e}")
        sys.exit(1)

    tiers = endpoint_set.tiers()
    click.echo(f"{len(endpoint_set)} endpoints in {len(tiers)} priority tiers")
    if config.resolve_srv:
        host = endpoint_set.endpoints[0].host
        click.echo(f"Host {host} is resolved through DNS SRV")

    for attempt in range(attempts):
        sequence = endpoint_set.trial_sequence()
        click.echo(f"\nAttempt {attempt + 1}:")
        for position, endpoint in enumerate(sequence, start=1):
            priority = ""
            if endpoint.priority is not None:
                priority = f" (priority {endpoint.priority})"
            click.echo(f"   {position}. {endpoint}{priority}")


@xsession.command()
@click.argument("config_file", type=click.Path())
def validate(config_file: str):
    """Validate a YAML configuration file.

    CONFIG_FILE: Path to a file with 'connection' and 'pooling' entries
    """
    logger = get_logger("xsession.cli.validate")

    try:
        config = load_config_file(config_file)
        endpoint_set = EndpointSet.from_config(config.connection)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}")
        sys.exit(1)

    connection = config.connection
    pooling = config.pooling
    click.echo("Configuration is valid")
    click.echo(f"User: {connection.user or '(none)'}")
    click.echo(f"Schema: {connection.default_schema or '(none)'}")
    click.echo(f"Authentication: {connection.auth or 'inferred'}")
    click.echo(f"TLS: {'enabled' if connection.tls.enabled else 'disabled'}")
    click.echo(f"Connect timeout: {connection.connect_timeout} ms")
    click.echo(f"Endpoints: {', '.join(str(e) for e in endpoint_set)}")
    if pooling.enabled:
        click.echo(
            f"Pooling: max_size={pooling.max_size}, "
            f"max_idle_time={pooling.max_idle_time} ms, "
            f"queue_timeout={pooling.queue_timeout} ms"
        )
    else:
        click.echo("Pooling: disabled")

    logger.info(f"Validated configuration {config_file}")


@xsession.command()
def defaults():
    """Show default connection and pooling settings."""
    click.echo("Connection:")
    for key, value in get_connection_defaults().items():
        click.echo(f"   {key}: {value}")
    click.echo("Pooling:")
    for key, value in get_pooling_defaults().items():
        click.echo(f"   {key}: {value}")


@xsession.command()
@click.argument("uri")
def probe(uri: str):
    """Check which endpoint accepts a TCP connection.

    Only opens and closes a socket; no handshake is performed.

    URI: Connection string
    """
    try:
        config = load_connection_config(uri)
        endpoint_set = EndpointSet.from_config(config)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}")
        sys.exit(1)

    try:
        endpoint = asyncio.run(_probe(endpoint_set, config.connect_timeout))
    except ConnectionFailedError as e:
        click.echo(f"Connection failed: {e}")
        sys.exit(1)

    click.echo(f"Connected to {endpoint}")


async def _probe(endpoint_set: EndpointSet, connect_timeout: int):
    establisher = ConnectionEstablisher(StreamTransport, endpoint_set)
    transport = await establisher.connect(
        endpoint_set.trial_sequence(), connect_timeout
    )
    endpoint = transport.endpoint
    await transport.close()
    return endpoint


if __name__ == "__main__":
    xsession()
