"""
Opening a transport to the first reachable endpoint of a trial sequence.
"""
import asyncio
from typing import Callable, List, Optional, Tuple

from xsession.messages import get_logger
from xsession.utility.errors import (
    ER_DEVAPI_CONNECTION_TIMEOUT,
    ER_DEVAPI_MULTI_HOST_CONNECTION_FAILED,
    MULTI_HOST_TIMEOUT_MESSAGE,
    message_for,
)
from xsession.utility.exceptions import (
    ConnectionFailedError,
    ConnectTimeoutError,
    NoMoreHostsError,
)

from .base import BaseTransport
from .endpoints import Endpoint, EndpointSet


class ConnectionEstablisher:
    """
    Walks a trial sequence until one endpoint accepts a connection.

    Every endpoint gets its own ``connect_timeout`` window; the timer is
    re-armed for each attempt, so the total time can reach
    ``connect_timeout * len(sequence)``. Failures are reported to the
    EndpointSet so they influence later sequences.
    """

    def __init__(
        self,
        transport_factory: Callable[[], BaseTransport],
        endpoints: Optional[EndpointSet] = None,
    ):
        """
        Initialize the establisher.

        Args:
            transport_factory: Callable returning a new, unopened transport
            endpoints: Set to report failures and successes to
        """
        self.transport_factory = transport_factory
        self.endpoints = endpoints
        self.logger = get_logger("xsession.establisher")

    async def connect(
        self, sequence: List[Endpoint], connect_timeout: int
    ) -> BaseTransport:
        """
        Open a transport to the first reachable endpoint.

        Args:
            sequence: Endpoints in trial order
            connect_timeout: Per-endpoint timeout in ms (0 disables it)

        Returns:
            An open transport

        Raises:
            ConnectTimeoutError: Single endpoint that did not answer in time
            ConnectionFailedError: Single endpoint that refused the connection
            NoMoreHostsError: Every endpoint of a multi-host sequence failed
        """
        failures: List[Tuple[Endpoint, Exception]] = []

        for endpoint in sequence:
            try:
                transport = await self._attempt(endpoint, connect_timeout)
            except (ConnectTimeoutError, OSError) as e:
                self.logger.warning(f"Connection to {endpoint} failed: {str(e)}")
                failures.append((endpoint, e))
                if self.endpoints is not None:
                    self.endpoints.record_failure(endpoint)
                continue

            if self.endpoints is not None:
                self.endpoints.record_success(endpoint)
            self.logger.debug(f"Connected to {endpoint}")
            return transport

        raise self._exhausted(failures, connect_timeout)

    async def _attempt(self, endpoint: Endpoint, connect_timeout: int) -> BaseTransport:
        transport = self.transport_factory()
        timeout = connect_timeout / 1000 if connect_timeout > 0 else None
        try:
            async with asyncio.timeout(timeout):
                await transport.open(endpoint)
        except TimeoutError as e:
            await transport.close()
            raise ConnectTimeoutError(
                message_for(ER_DEVAPI_CONNECTION_TIMEOUT, connect_timeout),
                ER_DEVAPI_CONNECTION_TIMEOUT,
                endpoint=endpoint.address,
            ) from e
        return transport

    def _exhausted(self, failures, connect_timeout: int) -> ConnectionFailedError:
        if len(failures) == 1:
            endpoint, error = failures[0]
            if isinstance(error, ConnectionFailedError):
                return error
            wrapped = ConnectionFailedError(
                str(error) or f"Unable to connect to {endpoint}",
                getattr(error, "errno", None),
                endpoint=endpoint.address,
            )
            wrapped.__cause__ = error
            return wrapped

        if failures and all(isinstance(e, ConnectTimeoutError) for _, e in failures):
            message = MULTI_HOST_TIMEOUT_MESSAGE % connect_timeout
        else:
            message = message_for(ER_DEVAPI_MULTI_HOST_CONNECTION_FAILED)
        return NoMoreHostsError(
            message, ER_DEVAPI_MULTI_HOST_CONNECTION_FAILED, failures=failures
        )
