"""
Session pool with lazy creation, idle eviction and a FIFO wait queue.

Provides session reuse across concurrent callers to avoid handshake
overhead and to bound the number of server connections.
"""
import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, List, Optional, Set

from xsession.messages import get_logger
from xsession.utility.exceptions import (
    PoolClosedError,
    PoolQueueTimeoutError,
    XSessionError,
)

from .constants import POOLING_DEFAULTS

SessionFactory = Callable[["ConnectionPool"], Awaitable]


class ConnectionPool:
    """
    Async session pool.

    Sessions are created on demand up to ``max_size``. Released sessions are
    kept idle and reused most-recent-first; callers that find the pool
    saturated wait in arrival order.

    Design:
    - Idle sessions form a LIFO stack, so a small working set stays warm and
      the rest age out through ``max_idle_time``
    - Every leased session is reset first (Session-Reset keeping the
      connection open); a session whose connection died while idle is
      replaced transparently
    - A released session goes straight to the oldest waiter if there is one
    - Capacity freed by a discarded session is reserved for the oldest
      waiter, so late arrivals cannot jump the queue
    - A caller cancelled while waiting or while its session is being reset
      gives back whatever it was handed
    - Prepared statements are kept across reuse unless
      ``retain_prepared_statements`` is off
    - All durations are in ms and ``0`` means "no limit"

    Example:
        ```python
        pool = ConnectionPool(
            name="orders",
            session_factory=factory.create_pooled_session,
            max_size=8,
            queue_timeout=2000,
        )

        session = await pool.lease()
        try:
            await session.sql("SELECT 1")
        finally:
            await pool.release(session)

        await pool.close()
        ```
    """

    def __init__(
        self,
        name: str,
        session_factory: SessionFactory,
        max_size: int = POOLING_DEFAULTS.max_size,
        max_idle_time: int = POOLING_DEFAULTS.max_idle_time,
        queue_timeout: int = POOLING_DEFAULTS.queue_timeout,
        retain_prepared_statements: bool = POOLING_DEFAULTS.retain_prepared_statements,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the pool. No session is created until the first lease.

        Args:
            name: Name of this pool (for logging)
            session_factory: Async callable building a new session for a pool
            max_size: Maximum number of live sessions
            max_idle_time: How long an idle session is kept, in ms
            queue_timeout: Default wait for a free session, in ms
            retain_prepared_statements: Keep a session's prepared statement
                table when it is reset for its next user
            clock: Monotonic clock in seconds
        """
        self.name = name
        self.session_factory = session_factory
        self.max_size = max_size
        self.max_idle_time = max_idle_time
        self.queue_timeout = queue_timeout
        self.retain_prepared_statements = retain_prepared_statements
        self._clock = clock

        self._idle: List = []
        self._active: Set = set()
        self._waiters: Deque[asyncio.Future] = deque()
        # Sessions being built, including capacity reserved for waiters
        self._building = 0
        self._closed = False

        self.logger = get_logger(f"xsession.pool.{name}")

    async def lease(self, queue_timeout: Optional[int] = None):
        """
        Get a session from the pool.

        Args:
            queue_timeout: Wait limit in ms for this call (default: the
                pool's queue_timeout)

        Returns:
            A reset, open session

        Raises:
            PoolClosedError: If the pool is closed
            PoolQueueTimeoutError: If no session frees up in time
        """
        if self._closed:
            raise PoolClosedError("The pool is closed.")

        await self._expire_idle()

        if self._idle:
            session = self._idle.pop()
            self._active.add(session)
            self.logger.debug(f"Reusing idle session {session.id} ({self._stats()})")
            return await self._prepare(session)

        if self.size < self.max_size:
            self._building += 1
            return await self._build()

        if queue_timeout is None:
            queue_timeout = self.queue_timeout
        return await self._wait(queue_timeout)

    async def release(self, session) -> None:
        """
        Give a session back to the pool.

        Unknown or already released sessions are ignored. Dead sessions are
        discarded and their capacity passed on to a waiter.
        """
        if session not in self._active:
            return
        self._active.discard(session)

        if self._closed:
            await session.destroy()
            return

        if not session.is_alive:
            self.logger.debug(f"Discarding dead session {session.id}")
            await session.abandon()
            self._grant_capacity()
            return

        session.mark_idle(self._clock())
        self._hand_over(session)

    async def close(self) -> None:
        """
        Close the pool.

        Waiting callers fail with PoolClosedError and every session's
        connection is closed without resetting server state.

        Raises:
            PoolClosedError: If the pool was already closed
        """
        if self._closed:
            raise PoolClosedError()

        self.logger.info(f"Closing session pool '{self.name}'")
        self._closed = True

        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_exception(PoolClosedError("The pool was closed."))

        sessions = self._idle + list(self._active)
        self._idle = []
        self._active = set()
        for session in sessions:
            await session.abandon()

        self.logger.success(f"Pool '{self.name}' closed ({len(sessions)} sessions)")

    def _hand_over(self, session) -> None:
        """Give an idle session to the oldest waiter, or park it."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                self._active.add(session)
                waiter.set_result(session)
                self.logger.debug(f"Handed session {session.id} to a waiting caller")
                return

        self._idle.append(session)
        self.logger.debug(f"Released session {session.id} ({self._stats()})")

    async def _prepare(self, session):
        """Reset a session for its next user, replacing it if it died."""
        if session.is_alive:
            try:
                await session.reset(retain_prepared=self.retain_prepared_statements)
                return session
            except XSessionError as e:
                self.logger.warning(f"Could not reset session {session.id}: {str(e)}")
            except BaseException:
                # Reset interrupted: the session cannot be trusted
                self._active.discard(session)
                self._grant_capacity()
                await session.abandon()
                raise

        self.logger.debug(f"Session {session.id} is gone, building a replacement")
        self._active.discard(session)
        self._building += 1
        try:
            await session.abandon()
        except BaseException:
            self._building -= 1
            self._grant_capacity()
            raise
        return await self._build()

    async def _build(self):
        """Build a session on capacity already counted in ``_building``."""
        try:
            session = await self.session_factory(self)
        except BaseException:
            self._building -= 1
            self._grant_capacity()
            raise
        self._building -= 1

        if self._closed:
            await session.abandon()
            raise PoolClosedError("The pool was closed.")

        self._active.add(session)
        self.logger.debug(f"Created session {session.id} ({self._stats()})")
        return session

    async def _wait(self, queue_timeout: int):
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        self.logger.debug(f"Pool '{self.name}' is full, waiting ({self._stats()})")

        timeout = queue_timeout / 1000 if queue_timeout > 0 else None
        try:
            async with asyncio.timeout(timeout):
                grant = await waiter
        except TimeoutError:
            if not (waiter.done() and not waiter.cancelled()):
                self._discard_waiter(waiter)
                raise PoolQueueTimeoutError(queue_timeout) from None
            # Served at the same moment the timer fired
            grant = waiter.result()
        except BaseException:
            granted = (
                waiter.done() and not waiter.cancelled() and waiter.exception() is None
            )
            if granted:
                self._give_back(waiter.result())
            else:
                self._discard_waiter(waiter)
            raise

        if grant is None:
            return await self._build()
        return await self._prepare(grant)

    def _give_back(self, grant) -> None:
        """Undo a grant made to a caller that went away before using it."""
        if grant is None:
            self._building -= 1
            self._grant_capacity()
            return
        self._active.discard(grant)
        if not self._closed:
            self._hand_over(grant)

    def _grant_capacity(self) -> None:
        """Reserve one free slot for the oldest waiter, if any."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                self._building += 1
                waiter.set_result(None)
                return

    def _discard_waiter(self, waiter: asyncio.Future) -> None:
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass

    async def _expire_idle(self) -> None:
        if self.max_idle_time <= 0 or not self._idle:
            return
        now = self._clock()
        stale = [
            session
            for session in self._idle
            if (now - session.released_at) * 1000 > self.max_idle_time
        ]
        if not stale:
            return
        self._idle = [session for session in self._idle if session not in stale]
        for session in stale:
            self.logger.debug(f"Evicting idle session {session.id}")
            await session.abandon()

    def _stats(self) -> str:
        return (
            f"{len(self._active)} active, {len(self._idle)} idle, "
            f"{len(self._waiters)} waiting"
        )

    @property
    def size(self) -> int:
        """Get the number of live sessions, including ones being built."""
        return len(self._idle) + len(self._active) + self._building

    @property
    def available(self) -> int:
        """Get the number of idle sessions."""
        return len(self._idle)

    @property
    def waiting(self) -> int:
        """Get the number of callers waiting for a session."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def closed(self) -> bool:
        return self._closed
