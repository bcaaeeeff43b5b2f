"""
Protocol messages as seen by the session layer.

These are the fields the session layer reads or writes. Byte layout is the
codec's business: a codec maps each of these classes to and from its frames.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


# Client -> server


@dataclass(frozen=True)
class CapabilitiesGet:
    pass


@dataclass(frozen=True)
class CapabilitiesSet:
    capabilities: Dict[str, Any]


@dataclass(frozen=True)
class AuthenticateStart:
    mechanism: str
    auth_data: bytes = b""
    initial_response: bytes = b""


@dataclass(frozen=True)
class AuthenticateContinue:
    auth_data: bytes


@dataclass(frozen=True)
class StatementExecute:
    """An operation sent ad hoc (not prepared)."""

    operation: Any


@dataclass(frozen=True)
class Prepare:
    stmt_id: int
    operation: Any


@dataclass(frozen=True)
class Execute:
    stmt_id: int
    args: Tuple[Any, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None


@dataclass(frozen=True)
class Deallocate:
    stmt_id: int


@dataclass(frozen=True)
class SessionReset:
    keep_open: bool = True


@dataclass(frozen=True)
class Close:
    pass


# Server -> client


@dataclass(frozen=True)
class Ok:
    message: str = ""


@dataclass(frozen=True)
class Error:
    code: int
    message: str
    sql_state: str = "HY000"


@dataclass(frozen=True)
class Capabilities:
    values: Dict[str, Any] = field(default_factory=dict)

    @property
    def auth_mechanisms(self) -> List[str]:
        return list(self.values.get("authentication.mechanisms", []))


@dataclass(frozen=True)
class AuthenticateContinueChallenge:
    auth_data: bytes


@dataclass(frozen=True)
class AuthenticateOk:
    auth_data: bytes = b""


@dataclass(frozen=True)
class Result:
    """Outcome of a statement: rows, affected items and warnings."""

    rows: Tuple[Tuple[Any, ...], ...] = ()
    columns: Tuple[str, ...] = ()
    affected_items: int = 0
    auto_increment_value: Optional[int] = None
    warnings: Tuple[str, ...] = ()
