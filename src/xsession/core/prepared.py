"""
Per-session prepared statement bookkeeping.

The registry decides, for each execution of an Operation, which messages
the session sends:

- first execution: ad hoc
- second execution with the same fingerprint: Prepare, then Execute
- later executions with the same fingerprint: Execute only
- fingerprint changed after preparing: Deallocate, then ad hoc
- fingerprint changed before preparing: ad hoc, with a new baseline

Statement ids are session-local. A freed id goes back into a min-heap so
the lowest free id is always reused first, while the prepare sequence keeps
growing like the server's own counter.
"""
import heapq
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from xsession.messages import get_logger
from xsession.protocol.messages import (
    Deallocate,
    Execute,
    Prepare,
    StatementExecute,
)
from xsession.utility.errors import (
    ER_MAX_PREPARED_STMT_COUNT_REACHED,
    ER_UNKNOWN_COM_ERROR,
)
from xsession.utility.exceptions import ServerError

from .operations import Operation, fingerprint, shape

# Prepare errors that mean "this server will not prepare more statements"
RESOURCE_ERROR_CODES = (ER_MAX_PREPARED_STMT_COUNT_REACHED, ER_UNKNOWN_COM_ERROR)


class Action(Enum):
    AD_HOC = "ad_hoc"
    PREPARE = "prepare"
    EXECUTE = "execute"
    DEALLOCATE = "deallocate"


@dataclass(frozen=True)
class PreparedStatement:
    """A statement the server currently holds for this session."""

    fingerprint: str
    statement_id: int
    sql_shape: str
    sequence: int


@dataclass
class Plan:
    """Messages to send for one execution. The last reply is the result."""

    action: Action
    messages: List = field(default_factory=list)
    statement: Optional[PreparedStatement] = None


@dataclass
class _Tracked:
    baseline: str
    prepared: Optional[PreparedStatement] = None


class StatementIdPool:
    """Lowest-free-first allocator for statement ids, starting at 1."""

    def __init__(self):
        self._free: List[int] = []
        self._next = 1

    def allocate(self) -> int:
        if self._free:
            return heapq.heappop(self._free)
        stmt_id = self._next
        self._next += 1
        return stmt_id

    def release(self, stmt_id: int) -> None:
        heapq.heappush(self._free, stmt_id)

    @property
    def in_use(self) -> int:
        return self._next - 1 - len(self._free)


class PreparedStatementRegistry:
    """
    Tracks operations executed on one session and their prepared state.

    Operations are held weakly: dropping the last reference to an Operation
    drops its entry. Its server-side statement stays allocated until the
    session is reset or closed.
    """

    def __init__(self, session_id: str = ""):
        self.session_id = session_id
        self.degraded = False
        self._ids = StatementIdPool()
        self._tracked: "weakref.WeakKeyDictionary[Operation, _Tracked]" = (
            weakref.WeakKeyDictionary()
        )
        self._sequence = 0
        self.logger = get_logger(f"xsession.session.{session_id}")

    @property
    def prepared_count(self) -> int:
        """Number of statements currently prepared on the server."""
        return self._ids.in_use

    @property
    def sequence(self) -> int:
        """Number of Prepare messages sent since the last reset."""
        return self._sequence

    def lookup(self, operation: Operation) -> Optional[PreparedStatement]:
        """Get the prepared statement held for ``operation``, if any."""
        tracked = self._tracked.get(operation)
        return tracked.prepared if tracked else None

    def plan(self, operation: Operation) -> Plan:
        """Decide how to run ``operation`` and update the bookkeeping."""
        current = fingerprint(operation)
        tracked = self._tracked.get(operation)

        if tracked is None:
            self._tracked[operation] = _Tracked(baseline=current)
            return self._ad_hoc(operation)

        if tracked.prepared is not None:
            statement = tracked.prepared
            if statement.fingerprint == current:
                return Plan(
                    Action.EXECUTE, [self._execute(statement, operation)], statement
                )
            # Shape changed: the server copy is stale
            self._ids.release(statement.statement_id)
            tracked.prepared = None
            tracked.baseline = current
            return Plan(
                Action.DEALLOCATE,
                [Deallocate(statement.statement_id), StatementExecute(operation)],
                statement,
            )

        if tracked.baseline != current:
            tracked.baseline = current
            return self._ad_hoc(operation)

        if self.degraded or not operation.preparable:
            return self._ad_hoc(operation)

        self._sequence += 1
        statement = PreparedStatement(
            fingerprint=current,
            statement_id=self._ids.allocate(),
            sql_shape=shape(operation),
            sequence=self._sequence,
        )
        tracked.prepared = statement
        self.logger.debug(
            f"Preparing statement {statement.statement_id} "
            f"(sequence {statement.sequence})"
        )
        return Plan(
            Action.PREPARE,
            [
                Prepare(statement.statement_id, operation),
                self._execute(statement, operation),
            ],
            statement,
        )

    def prepare_rejected(
        self, operation: Operation, plan: Plan, error: ServerError
    ) -> Optional[StatementExecute]:
        """
        Undo a Prepare the server refused.

        Returns:
            The ad hoc message to send instead when the refusal is a
            resource limit (the session then stops preparing), or None when
            the error must reach the caller
        """
        self._ids.release(plan.statement.statement_id)
        tracked = self._tracked.get(operation)
        if tracked is not None:
            tracked.prepared = None

        if error.code not in RESOURCE_ERROR_CODES:
            return None

        if not self.degraded:
            self.logger.warning(
                f"Server refused to prepare statements ({error.code}), "
                f"running statements ad hoc from now on"
            )
        self.degraded = True
        return StatementExecute(operation)

    def reset(self) -> None:
        """
        Forget all statements. The server side was reset or closed.

        ``degraded`` survives: it describes the server, not the statements.
        """
        self._ids = StatementIdPool()
        self._tracked = weakref.WeakKeyDictionary()
        self._sequence = 0

    @staticmethod
    def _ad_hoc(operation: Operation) -> Plan:
        return Plan(Action.AD_HOC, [StatementExecute(operation)])

    @staticmethod
    def _execute(statement: PreparedStatement, operation: Operation) -> Execute:
        return Execute(
            statement.statement_id,
            operation.execute_args(),
            limit=operation.limit,
            offset=operation.offset,
        )
