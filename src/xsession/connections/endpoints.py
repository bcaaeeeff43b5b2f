"""
Candidate endpoints and the order in which they are tried.

An EndpointSet groups endpoints into priority tiers. Every connection
attempt asks for a fresh trial sequence: tiers from the highest priority to
the lowest, shuffled inside each tier so that load spreads across
equally-ranked servers. Endpoints that failed recently are moved to the end
of the sequence until ``retry_after`` milliseconds have passed.
"""
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from itertools import groupby
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from xsession.utility.errors import (
    ER_DEVAPI_BAD_CONNECTION_ENDPOINT_PRIORITY_RANGE,
    ER_DEVAPI_MIXED_CONNECTION_ENDPOINT_PRIORITY,
    ER_DEVAPI_SRV_LOOKUP_NO_MULTIPLE_ENDPOINTS,
    ER_DEVAPI_SRV_LOOKUP_NO_PORT,
    ER_DEVAPI_SRV_LOOKUP_NO_UNIX_SOCKET,
    ER_DEVAPI_SRV_RECORDS_NOT_AVAILABLE,
    message_for,
)
from xsession.utility.exceptions import ConfigError, ConnectionFailedError

from .constants import CONNECTION_DEFAULTS


@dataclass(frozen=True)
class Endpoint:
    """A server address: TCP host and port, or a local socket path."""

    host: Optional[str] = None
    port: Optional[int] = None
    socket: Optional[str] = None
    priority: Optional[int] = None

    @property
    def is_local(self) -> bool:
        """Whether this endpoint is a local stream socket."""
        return self.socket is not None

    @property
    def address(self) -> str:
        if self.is_local:
            return self.socket
        return f"{self.host}:{self.port}"

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class SrvRecord:
    """A DNS SRV record as returned by a resolver."""

    target: str
    port: int
    priority: int = 0
    weight: int = 0


class SrvResolver(ABC):
    """Looks up SRV records. DNS mechanics live outside xsession."""

    @abstractmethod
    async def resolve(self, name: str) -> List[SrvRecord]:
        """Return the SRV records published for ``name``."""
        pass


def sort_srv_records(
    records: Iterable[SrvRecord], rng: Optional[random.Random] = None
) -> List[SrvRecord]:
    """
    Order SRV records for connection attempts.

    Lower SRV priority values come first; within a priority, heavier records
    come first and records of equal weight are shuffled.
    """
    rng = rng or random.Random()
    ordered: List[SrvRecord] = []
    by_priority = sorted(records, key=lambda record: record.priority)
    for _, group in groupby(by_priority, key=lambda record: record.priority):
        by_weight = sorted(group, key=lambda record: -record.weight)
        for _, same_weight in groupby(by_weight, key=lambda record: record.weight):
            bucket = list(same_weight)
            rng.shuffle(bucket)
            ordered.extend(bucket)
    return ordered


def _config_error(code: int, *args) -> ConfigError:
    return ConfigError(message_for(code, *args), code)


def validate_endpoints(endpoints: Sequence[Endpoint]) -> None:
    """
    Check priority rules for a list of endpoints.

    Raises:
        ConfigError: If priorities are mixed, out of range, or set on a
            local socket endpoint
    """
    prioritized = [endpoint for endpoint in endpoints if endpoint.priority is not None]

    if any(endpoint.is_local for endpoint in prioritized):
        raise _config_error(ER_DEVAPI_MIXED_CONNECTION_ENDPOINT_PRIORITY)

    if prioritized and len(prioritized) != len(endpoints):
        raise _config_error(ER_DEVAPI_MIXED_CONNECTION_ENDPOINT_PRIORITY)

    for endpoint in prioritized:
        if not 0 <= endpoint.priority <= 100:
            raise _config_error(ER_DEVAPI_BAD_CONNECTION_ENDPOINT_PRIORITY_RANGE)


def validate_srv_lookup(endpoints: Sequence[Endpoint]) -> None:
    """
    Check that endpoints can be resolved through DNS SRV.

    Raises:
        ConfigError: For multiple endpoints, a local socket or an explicit port
    """
    if len(endpoints) > 1:
        raise _config_error(ER_DEVAPI_SRV_LOOKUP_NO_MULTIPLE_ENDPOINTS)
    endpoint = endpoints[0]
    if endpoint.is_local:
        raise _config_error(ER_DEVAPI_SRV_LOOKUP_NO_UNIX_SOCKET)
    if endpoint.port is not None:
        raise _config_error(ER_DEVAPI_SRV_LOOKUP_NO_PORT)


class EndpointSet:
    """
    Priority tiers of endpoints with per-attempt trial sequences.

    Either every endpoint has a priority in [0, 100] or none does. Without
    priorities all endpoints form a single tier. Sets built from SRV records
    keep the record order instead of tiering.

    Example:
        ```python
        endpoints = EndpointSet([
            Endpoint("db1", 33060, priority=100),
            Endpoint("db2", 33060, priority=50),
            Endpoint("db3", 33060, priority=50),
        ])
        endpoints.trial_sequence()
        # [db1, db3, db2] or [db1, db2, db3]
        ```
    """

    def __init__(
        self,
        endpoints: Sequence[Endpoint],
        retry_after: int = CONNECTION_DEFAULTS.endpoint_retry_after,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
        presorted: bool = False,
    ):
        """
        Initialize an endpoint set.

        Args:
            endpoints: Candidate endpoints
            retry_after: How long a failed endpoint is demoted, in ms
                (0 never demotes)
            rng: Random source for shuffling tiers
            clock: Monotonic clock in seconds
            presorted: Keep the given order instead of priority tiers

        Raises:
            ConfigError: If the priority rules are violated
        """
        if not endpoints:
            raise ConfigError("At least one endpoint is required")
        validate_endpoints(endpoints)

        self.endpoints = list(endpoints)
        self.retry_after = retry_after
        self.presorted = presorted
        self._rng = rng or random.Random()
        self._clock = clock
        self._failed_at: Dict[Endpoint, float] = {}

    @classmethod
    def from_config(cls, config, **kwargs) -> "EndpointSet":
        """
        Build an endpoint set from a ConnectionConfig.

        TCP endpoints without a port get the default port, except when the
        host is going to be resolved through SRV.
        """
        endpoints = []
        for item in config.resolved_endpoints():
            port = item.port
            if item.socket is None and port is None and not config.resolve_srv:
                port = CONNECTION_DEFAULTS.port
            endpoints.append(
                Endpoint(
                    host=item.host,
                    port=port,
                    socket=item.socket,
                    priority=item.priority,
                )
            )
        if config.resolve_srv:
            validate_srv_lookup(endpoints)
        kwargs.setdefault("retry_after", config.endpoint_retry_after)
        return cls(endpoints, **kwargs)

    @classmethod
    def from_srv_records(
        cls, name: str, records: Sequence[SrvRecord], **kwargs
    ) -> "EndpointSet":
        """
        Build an endpoint set from resolved SRV records.

        Raises:
            ConnectionFailedError: If no records were found for ``name``
        """
        if not records:
            raise ConnectionFailedError(
                message_for(ER_DEVAPI_SRV_RECORDS_NOT_AVAILABLE, name),
                ER_DEVAPI_SRV_RECORDS_NOT_AVAILABLE,
            )
        ordered = sort_srv_records(records, kwargs.get("rng"))
        endpoints = [
            Endpoint(host=record.target, port=record.port) for record in ordered
        ]
        return cls(endpoints, presorted=True, **kwargs)

    @property
    def is_prioritized(self) -> bool:
        return self.endpoints[0].priority is not None

    def tiers(self) -> List[List[Endpoint]]:
        """Get endpoints grouped by priority, highest first."""
        if self.presorted or not self.is_prioritized:
            return [list(self.endpoints)]
        by_priority = sorted(self.endpoints, key=lambda endpoint: -endpoint.priority)
        return [
            list(group)
            for _, group in groupby(by_priority, key=lambda endpoint: endpoint.priority)
        ]

    def trial_sequence(self) -> List[Endpoint]:
        """
        Get a fresh ordering of endpoints for one connection attempt.

        Tiers are concatenated from the highest priority down, each tier
        shuffled. Recently failed endpoints keep their relative order but
        move behind every available one.
        """
        sequence: List[Endpoint] = []
        for tier in self.tiers():
            if not self.presorted:
                self._rng.shuffle(tier)
            sequence.extend(tier)

        available = [endpoint for endpoint in sequence if self.is_available(endpoint)]
        demoted = [endpoint for endpoint in sequence if not self.is_available(endpoint)]
        return available + demoted

    def is_available(self, endpoint: Endpoint) -> bool:
        """Whether ``endpoint`` has not failed within ``retry_after``."""
        failed_at = self._failed_at.get(endpoint)
        if failed_at is None:
            return True
        if (self._clock() - failed_at) * 1000 >= self.retry_after:
            del self._failed_at[endpoint]
            return True
        return False

    def record_failure(self, endpoint: Endpoint) -> None:
        """Remember that a connection to ``endpoint`` failed."""
        if self.retry_after > 0:
            self._failed_at[endpoint] = self._clock()

    def record_success(self, endpoint: Endpoint) -> None:
        """Forget a previous failure of ``endpoint``."""
        self._failed_at.pop(endpoint, None)

    def __len__(self) -> int:
        return len(self.endpoints)

    def __iter__(self):
        return iter(self.endpoints)
