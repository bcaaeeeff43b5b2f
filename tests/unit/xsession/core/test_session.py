"""
Tests for Session: statement execution, prepared statements and lifecycle.
"""
import asyncio

import pytest

from fakes import FakeServer
from xsession.connections.factory import SessionFactory
from xsession.core.configs import load_connection_config
from xsession.core.operations import Literal, Operation, Placeholder
from xsession.core.session import SessionState
from xsession.protocol.messages import Result
from xsession.utility.exceptions import (
    ConnectionLostError,
    ServerError,
    SessionClosedError,
)


async def open_session(network, codec, server=None):
    server = network.add("db1:33060", server)
    config = load_connection_config("mysqlx://app:pw@db1:33060/shop")
    factory = SessionFactory(config, codec, transport_factory=network.transport)
    session = await factory.create_session()
    server.received.clear()
    return session, server


def find_orders():
    return Operation(
        "find",
        target="shop.orders",
        criteria=("==", "status", Placeholder("status")),
    )


class TestExecute:
    """Test what goes over the wire for repeated executions."""

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_ad_hoc_prepare_execute(self, network, codec):
        session, server = await open_session(network, codec)
        operation = find_orders()

        for status in ("open", "late", "done", "lost"):
            result = await session.execute(operation.bind(status=status))
            assert isinstance(result, Result)

        assert server.statement_kinds() == [
            "StatementExecute",
            "Prepare",
            "Execute",
            "Execute",
            "Execute",
        ]
        assert [m.args for m in server.received if hasattr(m, "args")] == [
            ("late",),
            ("done",),
            ("lost",),
        ]

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_changed_operation_is_deallocated(self, network, codec):
        session, server = await open_session(network, codec)
        operation = find_orders()
        await session.execute(operation)
        await session.execute(operation)

        operation.criteria = ("==", "status", Literal("open"))
        await session.execute(operation)

        assert server.statement_kinds() == [
            "StatementExecute",
            "Prepare",
            "Execute",
            "Deallocate",
            "StatementExecute",
        ]
        assert session.prepared.prepared_count == 0

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_sql(self, network, codec):
        session, server = await open_session(network, codec)

        result = await session.sql("SELECT ?", 1)

        assert result.rows == ((1,),)
        sent = server.received[0].operation
        assert sent.kind == "sql"
        assert sent.sql == "SELECT ?"
        assert sent.args == (1,)

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_server_error_passes_through(self, network, codec):
        """Test that statement errors reach the caller unchanged."""
        session, _ = await open_session(network, codec, FakeServer(statement_error=1146))

        with pytest.raises(ServerError) as exc_info:
            await session.sql("SELECT * FROM nope")

        assert exc_info.value.code == 1146
        assert exc_info.value.sql_state == "42S02"
        assert session.is_open

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_concurrent_requests_are_serialized(self, network, codec):
        session, server = await open_session(network, codec)

        results = await asyncio.gather(
            *(session.sql(f"SELECT {i}") for i in range(5))
        )

        assert len(results) == 5
        assert all(isinstance(result, Result) for result in results)
        assert server.statement_kinds() == ["StatementExecute"] * 5


class TestPrepareRejected:
    """Test how the session copes with a server that will not prepare."""

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_resource_limit_degrades_to_ad_hoc(self, network, codec):
        """Test that the caller never sees the resource error."""
        session, server = await open_session(
            network, codec, FakeServer(prepare_error=1461)
        )
        operation = find_orders()
        other = Operation.sql_statement("SELECT 1")

        for _ in range(3):
            assert isinstance(await session.execute(operation), Result)
        for _ in range(2):
            await session.execute(other)

        assert session.prepared.degraded
        assert server.statement_kinds() == [
            "StatementExecute",
            "Prepare",
            "StatementExecute",
            "StatementExecute",
            "StatementExecute",
            "StatementExecute",
        ]

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_unknown_command_degrades(self, network, codec):
        session, _ = await open_session(network, codec, FakeServer(prepare_error=1047))
        operation = find_orders()

        await session.execute(operation)
        await session.execute(operation)

        assert session.prepared.degraded

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_other_prepare_errors_are_raised(self, network, codec):
        session, _ = await open_session(network, codec, FakeServer(prepare_error=1054))
        operation = find_orders()
        await session.execute(operation)

        with pytest.raises(ServerError) as exc_info:
            await session.execute(operation)

        assert exc_info.value.code == 1054
        assert not session.prepared.degraded
        assert session.prepared.prepared_count == 0


class TestLifecycle:
    """Test reset, close and connection loss."""

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_reset_clears_prepared_statements(self, network, codec):
        session, server = await open_session(network, codec)
        operation = find_orders()
        await session.execute(operation)
        await session.execute(operation)

        await session.reset()

        assert server.kinds()[-1] == "SessionReset"
        assert session.prepared.prepared_count == 0
        await session.execute(operation)
        assert server.kinds()[-1] == "StatementExecute"

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_reset_can_keep_prepared_statements(self, network, codec):
        session, server = await open_session(network, codec)
        operation = find_orders()
        await session.execute(operation)
        await session.execute(operation)

        await session.reset(retain_prepared=True)

        assert session.prepared.prepared_count == 1
        await session.execute(operation)
        assert server.kinds()[-1] == "Execute"

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_cancelled_request_closes_session(self, network, codec):
        """Test that a reply left unread is never read by the next statement."""
        session, _ = await open_session(network, codec)
        operation = find_orders()
        await session.execute(operation)
        await session.execute(operation)
        session.channel.transport.read_delay = 1.0

        with pytest.raises(TimeoutError):
            await asyncio.wait_for(session.sql("SELECT 'a'"), 0.05)

        assert session.state is SessionState.CLOSED
        assert not session.channel.is_open
        assert session.prepared.prepared_count == 0
        with pytest.raises(SessionClosedError):
            await session.sql("SELECT 'b'")

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_cancelled_reset_closes_session(self, network, codec):
        session, _ = await open_session(network, codec)
        session.channel.transport.read_delay = 1.0

        with pytest.raises(TimeoutError):
            await asyncio.wait_for(session.reset(), 0.05)

        assert session.state is SessionState.CLOSED
        assert not session.channel.is_open

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_close_standalone_session(self, network, codec):
        session, server = await open_session(network, codec)

        await session.close()

        assert server.kinds() == ["Close"]
        assert session.state is SessionState.CLOSED
        assert not session.channel.is_open

        # Closing again is a no-op
        await session.close()
        assert server.kinds() == ["Close"]

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_execute_after_close(self, network, codec):
        session, _ = await open_session(network, codec)
        await session.close()

        with pytest.raises(SessionClosedError) as exc_info:
            await session.sql("SELECT 1")

        assert exc_info.value.code == 4040

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_context_manager_closes(self, network, codec):
        session, server = await open_session(network, codec)

        async with session:
            await session.sql("SELECT 1")

        assert session.state is SessionState.CLOSED
        assert server.kinds()[-1] == "Close"

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_connection_lost_mid_request(self, network, codec):
        """Test that a dropped connection closes the session."""
        session, _ = await open_session(network, codec)
        operation = find_orders()
        await session.execute(operation)
        await session.execute(operation)
        session.channel.transport.break_pipe()

        with pytest.raises(ConnectionLostError) as exc_info:
            await session.execute(operation)

        assert exc_info.value.code == 4041
        assert session.state is SessionState.CLOSED
        assert not session.is_alive
        assert session.prepared.prepared_count == 0

        with pytest.raises(SessionClosedError):
            await session.execute(operation)

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_server_closed_connection(self, network, codec):
        """Test that a connection closed while idle is noticed."""
        session, _ = await open_session(network, codec)

        session.channel.transport.drop()

        assert not session.is_open
        assert not session.is_alive
        with pytest.raises(SessionClosedError):
            await session.sql("SELECT 1")

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_destroy_without_server_answer(self, network, codec):
        """Test that closing a dead connection still marks the session closed."""
        session, server = await open_session(network, codec)
        session.channel.transport.drop()

        await session.destroy()

        assert session.state is SessionState.CLOSED
        assert server.kinds() == []

    @pytest.mark.asyncio
    @pytest.mark.timeout(10)
    async def test_repr(self, network, codec):
        session, _ = await open_session(network, codec)

        assert repr(session) == (
            f"Session(id={session.id!r}, endpoint=db1:33060, state=open)"
        )
