"""
Operation descriptors and their fingerprints.

An Operation describes one statement the session can run: a CRUD operation
on a collection or table, or a SQL string. Builders and expression parsing
live outside xsession; criteria arrive as already-parsed trees made of
tuples, dictionaries, strings, ``Literal`` and ``Placeholder`` nodes.

Operations are mutable so the same instance can be executed repeatedly with
different bound values, which is what lets the session prepare it.
"""
import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Operation kinds the server can prepare
PREPARABLE_KINDS = ("find", "modify", "remove", "select", "update", "delete", "sql")


@dataclass(frozen=True)
class Literal:
    """A constant inside a criteria tree. Part of the statement shape."""

    value: Any


@dataclass(frozen=True)
class Placeholder:
    """A named slot filled from ``Operation.bindings`` at execution time."""

    name: str


@dataclass(eq=False)
class Operation:
    """
    A statement to run on a session.

    Identity matters: the session remembers each Operation instance it has
    executed and compares its fingerprint on the next execution.

    Example:
        ```python
        find = Operation(
            "find",
            target="shop.orders",
            criteria=("==", "status", Placeholder("status")),
        )
        await session.execute(find.bind(status="open"))   # ad hoc
        await session.execute(find.bind(status="late"))   # prepared
        await session.execute(find.bind(status="done"))   # executed by id
        ```
    """

    kind: str
    target: Optional[str] = None
    criteria: Any = None
    projection: Tuple[Any, ...] = ()
    ordering: Tuple[Any, ...] = ()
    grouping: Tuple[Any, ...] = ()
    updates: Tuple[Any, ...] = ()
    values: Tuple[Any, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    sql: Optional[str] = None
    args: Tuple[Any, ...] = ()
    bindings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def sql_statement(cls, text: str, *args) -> "Operation":
        """Build a SQL operation with positional arguments."""
        return cls("sql", sql=text, args=tuple(args))

    @property
    def preparable(self) -> bool:
        return self.kind in PREPARABLE_KINDS

    def bind(self, **values) -> "Operation":
        """Set placeholder values. Does not change the fingerprint."""
        self.bindings.update(values)
        return self

    def paginate(self, limit: Optional[int] = None, offset: Optional[int] = None):
        """Set limit and offset. Only their presence is part of the shape."""
        self.limit = limit
        self.offset = offset
        return self

    def placeholders(self) -> List[str]:
        """Placeholder names in the order they appear in the criteria."""
        names: List[str] = []
        for tree in (self.criteria, self.projection, self.updates):
            _collect_placeholders(tree, names)
        return names

    def execute_args(self) -> Tuple[Any, ...]:
        """Values sent with an Execute: bound values, then SQL arguments."""
        bound = tuple(self.bindings.get(name) for name in self.placeholders())
        return bound + tuple(self.args)


def _collect_placeholders(node, names: List[str]) -> None:
    if isinstance(node, Placeholder):
        if node.name not in names:
            names.append(node.name)
    elif isinstance(node, dict):
        for key in sorted(node, key=repr):
            _collect_placeholders(node[key], names)
    elif isinstance(node, (list, tuple)):
        for item in node:
            _collect_placeholders(item, names)


def _canonical(node) -> str:
    if isinstance(node, Literal):
        return f"lit:{type(node.value).__name__}:{node.value!r}"
    if isinstance(node, Placeholder):
        return f"ph:{node.name}"
    if isinstance(node, dict):
        items = sorted((repr(key), _canonical(value)) for key, value in node.items())
        return "{" + ",".join(f"{key}={value}" for key, value in items) + "}"
    if isinstance(node, (list, tuple)):
        return "(" + ",".join(_canonical(item) for item in node) + ")"
    return repr(node)


def shape(operation: Operation) -> str:
    """
    Canonical text of everything that defines the statement.

    Literals, placeholder names, target, projection, ordering, grouping,
    updates and the SQL text are included. Bound values, SQL arguments and
    the limit/offset values are not; only whether limit and offset are set.
    Inserted values are included, so inserts are never reused.
    """
    parts = [
        operation.kind,
        repr(operation.target),
        _canonical(operation.criteria),
        _canonical(operation.projection),
        _canonical(operation.ordering),
        _canonical(operation.grouping),
        _canonical(operation.updates),
        _canonical(operation.values),
        f"limit:{operation.limit is not None}",
        f"offset:{operation.offset is not None}",
        repr(operation.sql),
    ]
    return "|".join(parts)


def fingerprint(operation: Operation) -> str:
    """Hash of the operation shape. Pure: same shape, same fingerprint."""
    return hashlib.sha256(shape(operation).encode("utf-8")).hexdigest()
