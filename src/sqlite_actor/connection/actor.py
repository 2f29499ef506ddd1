"""Connection actor — the single serialization point for one SQLite handle.

One asyncio task owns the engine handle and the transaction nesting level.
Callers never touch the engine: each public method puts a request in the
actor's FIFO mailbox and waits for the reply future. The task takes one
request at a time, runs its engine call to completion, updates the level
for transaction control and resolves the reply. Engine failures are
delivered through the reply; they never stop the actor.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any

from sqlite_actor.connection import nesting
from sqlite_actor.db.backend import Engine, EngineStatement, Params
from sqlite_actor.db.connection import create_engine
from sqlite_actor.db.results import Step, shape_row, shape_rows
from sqlite_actor.errors import ConnectionClosedError, StatementError

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], Awaitable[Engine]]


@dataclass
class _Request:
    op: str
    args: tuple[Any, ...]
    reply: asyncio.Future[Any]


_STOP = object()


def _consume(reply: asyncio.Future[Any]) -> None:
    """Retrieve an abandoned reply so asyncio does not warn about it."""
    if not reply.cancelled():
        reply.exception()


def _resolve(
    reply: asyncio.Future[Any], result: Any = None, exc: BaseException | None = None
) -> None:
    if reply.done():
        return
    if exc is not None:
        reply.set_exception(exc)
    else:
        reply.set_result(result)


class ConnectionActor:
    """Serialized access to one SQLite database.

    Requests from any number of callers are processed strictly one at a
    time, in the order they were submitted. Use ``open_connection`` to
    create a started actor.
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        *,
        call_timeout: float | None = None,
        name: str = "sqlite-actor",
    ) -> None:
        """Initialize with a coroutine factory that opens the engine handle."""
        self._engine_factory = engine_factory
        self._call_timeout = call_timeout
        self._name = name
        self._mailbox: asyncio.Queue[Any] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._current: _Request | None = None
        self._closing = False
        self._closed = asyncio.Event()
        self._level = 0
        self._handlers: dict[str, Callable[..., Awaitable[Any]]] = {
            "query": self._do_query,
            "execute": self._do_execute,
            "prepare": self._do_prepare,
            "step": self._do_step,
            "reset": self._do_reset,
            "bind": self._do_bind,
            "column_names": self._do_column_names,
            "finalize": self._do_finalize,
            "begin": partial(self._do_transition, nesting.begin),
            "commit": partial(self._do_transition, nesting.commit),
            "rollback": self._do_rollback,
        }

    def __repr__(self) -> str:
        state = "closed" if self._closing else "open"
        return f"<ConnectionActor {self._name} {state} level={self._level}>"

    @property
    def name(self) -> str:
        """Name of the actor task."""
        return self._name

    @property
    def level(self) -> int:
        """Current transaction nesting level (0 when no transaction is open)."""
        return self._level

    @property
    def closed(self) -> bool:
        """True once close() was called or the actor stopped."""
        return self._closing

    # -- lifecycle --

    async def start(self) -> ConnectionActor:
        """Start the actor task and wait until the engine handle is open."""
        if self._task is not None:
            raise RuntimeError(f"connection actor {self._name} already started")
        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._task = asyncio.create_task(self._run(ready), name=self._name)
        await ready
        return self

    def close(self) -> None:
        """Stop the actor without waiting.

        Requests submitted before this call are still served; anything
        submitted afterwards fails with ConnectionClosedError.
        """
        if self._closing:
            return
        self._closing = True
        if self._task is None:
            self._closed.set()
            return
        self._mailbox.put_nowait(_STOP)

    def abort(self) -> None:
        """Cancel the actor task at once, as a supervisor would.

        The engine handle is still closed, and every unanswered request
        fails with ConnectionClosedError.
        """
        self._closing = True
        if self._task is None:
            self._closed.set()
            return
        self._task.cancel()

    async def wait_closed(self) -> None:
        """Wait until the engine handle has been closed."""
        await self._closed.wait()

    async def aclose(self) -> None:
        """Close and wait for the engine handle to be released."""
        self.close()
        await self.wait_closed()

    async def __aenter__(self) -> ConnectionActor:
        """Start the actor if needed and return it."""
        if self._task is None:
            await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close the actor and wait for the engine handle to be released."""
        await self.aclose()

    async def _run(self, ready: asyncio.Future[None]) -> None:
        try:
            engine = await self._engine_factory()
        except BaseException as exc:
            self._closing = True
            self._closed.set()
            if isinstance(exc, Exception):
                _resolve(ready, exc=exc)
                return
            _resolve(ready, exc=ConnectionClosedError("connection actor stopped while opening"))
            raise

        _resolve(ready)
        logger.info("Connection actor %s started", self._name)
        try:
            while True:
                request = await self._mailbox.get()
                if request is _STOP:
                    break
                await self._handle(engine, request)
        finally:
            # Runs on normal close and when the task is cancelled
            self._closing = True
            self._fail_pending()
            try:
                await asyncio.shield(engine.close())
            finally:
                self._closed.set()
                logger.info("Connection actor %s stopped", self._name)

    def _fail_pending(self) -> None:
        if self._current is not None:
            _resolve(self._current.reply, exc=ConnectionClosedError())
            self._current = None
        while not self._mailbox.empty():
            request = self._mailbox.get_nowait()
            if request is not _STOP:
                _resolve(request.reply, exc=ConnectionClosedError())

    async def _handle(self, engine: Engine, request: _Request) -> None:
        self._current = request
        try:
            result = await self._handlers[request.op](engine, *request.args)
        except Exception as exc:
            logger.debug("%s failed: %s", request.op, exc)
            _resolve(request.reply, exc=exc)
        else:
            _resolve(request.reply, result)
        # Left set if the task is cancelled mid-request, so _fail_pending replies
        self._current = None

    async def _call(self, op: str, *args: Any) -> Any:
        if self._closing or self._task is None:
            raise ConnectionClosedError()
        reply: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._mailbox.put_nowait(_Request(op, args, reply))
        try:
            # shield: a caller giving up does not cancel the request itself
            return await asyncio.wait_for(asyncio.shield(reply), self._call_timeout)
        except (TimeoutError, asyncio.CancelledError):
            reply.add_done_callback(_consume)
            raise

    # -- request handlers (run inside the actor task only) --

    @staticmethod
    def _check_owned(engine: Engine, statement: EngineStatement) -> None:
        if not engine.owns(statement):
            raise StatementError("statement was not prepared on this connection")

    async def _do_query(self, engine: Engine, sql: str, params: Params) -> list[dict[str, Any]]:
        columns, rows = await engine.query(sql, params)
        return shape_rows(columns, rows)

    async def _do_execute(self, engine: Engine, sql: str, params: Params) -> int:
        return await engine.exec(sql, params)

    async def _do_prepare(self, engine: Engine, sql: str) -> EngineStatement:
        return await engine.prepare(sql)

    async def _do_step(self, engine: Engine, statement: EngineStatement) -> dict[str, Any] | Step:
        self._check_owned(engine, statement)
        result = await statement.step()
        if isinstance(result, Step):
            return result
        return shape_row(await statement.column_names(), result)

    async def _do_reset(self, engine: Engine, statement: EngineStatement) -> None:
        self._check_owned(engine, statement)
        await statement.reset()

    async def _do_bind(self, engine: Engine, statement: EngineStatement, params: Params) -> None:
        self._check_owned(engine, statement)
        await statement.bind(params)

    async def _do_column_names(self, engine: Engine, statement: EngineStatement) -> tuple[str, ...]:
        self._check_owned(engine, statement)
        return await statement.column_names()

    async def _do_finalize(self, engine: Engine, statement: EngineStatement) -> None:
        self._check_owned(engine, statement)
        await statement.finalize()

    async def _do_transition(
        self, transition_fn: Callable[[int], nesting.Transition], engine: Engine
    ) -> int:
        transition = transition_fn(self._level)
        await engine.exec(transition.sql)
        # Only adopt the new level once the engine accepted the statement
        logger.debug("Level %d -> %d: %s", self._level, transition.level, transition.sql)
        self._level = transition.level
        return self._level

    async def _do_rollback(self, engine: Engine, expected_level: int | None = None) -> bool:
        if expected_level is not None and self._level != expected_level:
            logger.debug("Rollback skipped: level is %d, not %d", self._level, expected_level)
            return False
        await self._do_transition(nesting.rollback, engine)
        return True

    # -- public request API --

    async def query(self, sql: str, params: Params | None = None) -> list[dict[str, Any]]:
        """Run a query and return every row as a column-name mapping."""
        return await self._call("query", sql, params if params is not None else ())

    async def execute(self, sql: str, params: Params | None = None) -> int:
        """Execute one statement. Returns rows affected, or -1 when not applicable."""
        return await self._call("execute", sql, params if params is not None else ())

    async def prepare(self, sql: str) -> EngineStatement:
        """Compile a statement and return its handle.

        The handle belongs to the caller until ``finalize``; it stays
        usable until then or until this connection closes.
        """
        return await self._call("prepare", sql)

    async def step(self, statement: EngineStatement) -> dict[str, Any] | Step:
        """Return the next row, ``Step.DONE`` once exhausted, or ``Step.BUSY``."""
        return await self._call("step", statement)

    async def reset(self, statement: EngineStatement) -> None:
        """Rewind a statement to its first row; bound parameters are kept."""
        await self._call("reset", statement)

    async def bind(self, statement: EngineStatement, params: Params) -> None:
        """Bind parameters for the statement's next execution."""
        await self._call("bind", statement, params)

    async def column_names(self, statement: EngineStatement) -> tuple[str, ...]:
        """Return the statement's output column names in declaration order."""
        return await self._call("column_names", statement)

    async def finalize(self, statement: EngineStatement) -> None:
        """Dispose of a prepared statement."""
        await self._call("finalize", statement)

    async def begin(self) -> int:
        """Begin a transaction, or a savepoint if one is already open.

        Returns the nesting level the new transaction runs at.
        """
        return await self._call("begin")

    async def commit(self) -> None:
        """Commit the innermost transaction level.

        Raises TransactionStateError when no transaction is open.
        """
        await self._call("commit")

    async def rollback(self, *, level: int | None = None) -> bool:
        """Roll back the innermost transaction level.

        Raises TransactionStateError when no transaction is open. With
        ``level``, the rollback only happens if the connection is still at
        that level when the request is served; otherwise it does nothing.
        Returns whether a rollback was issued.
        """
        return await self._call("rollback", level)


async def open_connection(
    db_path: Path | str, *, call_timeout: float | None = None
) -> ConnectionActor:
    """Start a connection actor for the database at db_path (or ":memory:")."""
    actor = ConnectionActor(
        partial(create_engine, db_path),
        call_timeout=call_timeout,
        name=f"sqlite-actor:{db_path}",
    )
    return await actor.start()
