"""SQLite implementation of the Engine protocol.

Thin wrapper around aiosqlite.Connection. The connection is opened with
``isolation_level=None`` so the sqlite3 module never begins transactions
on its own; every BEGIN, SAVEPOINT, RELEASE, COMMIT and ROLLBACK is
issued explicitly by the connection actor.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, NamedTuple

from sqlite_actor.db.results import Step
from sqlite_actor.errors import ConnectionClosedError, EngineError, StatementError

if TYPE_CHECKING:
    import aiosqlite

    from sqlite_actor.db.backend import EngineStatement, Params, RawRow

logger = logging.getLogger(__name__)

_BUSY_CODES = (sqlite3.SQLITE_BUSY, sqlite3.SQLITE_LOCKED)


def _wrap(exc: sqlite3.Error | sqlite3.Warning, sql: str | None) -> EngineError:
    """Convert a sqlite3 exception into an EngineError, message verbatim."""
    return EngineError(str(exc), code=getattr(exc, "sqlite_errorname", None), sql=sql)


@contextmanager
def engine_errors(sql: str | None) -> Iterator[None]:
    """Re-raise sqlite3 errors from the block as EngineError."""
    try:
        yield
    except (sqlite3.Error, sqlite3.Warning) as exc:
        raise _wrap(exc, sql) from exc


def _is_busy(exc: BaseException) -> bool:
    """True for SQLITE_BUSY / SQLITE_LOCKED, including their extended codes."""
    code = getattr(exc, "sqlite_errorcode", None)
    return code is not None and (code & 0xFF) in _BUSY_CODES


def _needs_bindings(exc: sqlite3.ProgrammingError) -> bool:
    """The statement compiled but was probed without its parameters."""
    # CPython's sqlite3 raises "Incorrect number of bindings supplied. The
    # current statement uses N, and there are M supplied."
    return "number of bindings" in str(exc)


def _strip_leading_comments(sql: str) -> str:
    text = sql.lstrip()
    while text.startswith(("--", "/*")):
        if text.startswith("--"):
            _, _, text = text.partition("\n")
        else:
            _, _, text = text.partition("*/")
        text = text.lstrip()
    return text


def _is_explain(sql: str) -> bool:
    """True if the statement is itself an EXPLAIN or EXPLAIN QUERY PLAN."""
    words = _strip_leading_comments(sql).split(None, 1)
    return bool(words) and words[0].upper() == "EXPLAIN"


class _Shape(NamedTuple):
    """What a compiled statement does, read from its EXPLAIN program."""

    returns_rows: bool
    writes: bool


def _shape_of(program: list[Any]) -> _Shape:
    # EXPLAIN rows: addr, opcode, p1, p2, p3, p4, p5, comment
    returns_rows = any(op[1] == "ResultRow" for op in program)
    writes = any(
        op[1] == "OpenWrite" or (op[1] == "Transaction" and op[3] != 0) for op in program
    )
    return _Shape(returns_rows, writes)


def _column_names(description: Any) -> tuple[str, ...]:
    if not description:
        return ()
    return tuple(col[0] for col in description)


def _copy_params(params: Params | None) -> Params:
    if params is None:
        return ()
    if isinstance(params, Mapping):
        return dict(params)
    return tuple(params)


class SQLiteStatement:
    """A prepared statement: SQL text, bound parameters and a lazy cursor.

    The cursor is opened on the first ``step`` with whatever parameters are
    bound at that moment. ``column_names`` never runs a statement for its
    effects: statements without result rows report no columns, and a
    row-returning statement that writes is described inside a savepoint
    that is rolled back. Column names are cached once and survive
    ``reset`` and ``bind``.
    """

    def __init__(self, engine: SQLiteEngine, sql: str, shape: _Shape | None = None) -> None:
        """Initialize for a statement already validated by the engine."""
        self._engine = engine
        self._sql = sql
        self._shape = shape
        self._params: Params = ()
        self._cursor: aiosqlite.Cursor | None = None
        self._columns: tuple[str, ...] | None = None
        self._exhausted = False
        self._finalized = False

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else "done" if self._exhausted else "ready"
        return f"<SQLiteStatement {self._sql!r} {state}>"

    @property
    def sql(self) -> str:
        """The SQL text the statement was prepared from."""
        return self._sql

    @property
    def params(self) -> Params:
        """The currently bound parameters."""
        return self._params

    @property
    def finalized(self) -> bool:
        """True once the statement has been disposed of."""
        return self._finalized

    @property
    def exhausted(self) -> bool:
        """True once stepping has returned every row."""
        return self._exhausted

    def _check_usable(self) -> None:
        if self._engine.closed:
            raise ConnectionClosedError()
        if self._finalized:
            raise StatementError(f"statement is finalized: {self._sql!r}")

    async def _open(self) -> aiosqlite.Cursor:
        if self._cursor is None:
            self._cursor = await self._engine.connection.execute(self._sql, self._params)
            if self._columns is None:
                self._columns = _column_names(self._cursor.description)
        return self._cursor

    async def _rewind(self) -> None:
        cursor, self._cursor = self._cursor, None
        self._exhausted = False
        if cursor is not None:
            with engine_errors(self._sql):
                await cursor.close()

    async def step(self) -> RawRow | Step:
        """Advance the cursor and return the raw row, or a sentinel."""
        self._check_usable()
        if self._exhausted:
            return Step.DONE
        try:
            cursor = await self._open()
            row = await cursor.fetchone()
        except (sqlite3.Error, sqlite3.Warning) as exc:
            if _is_busy(exc):
                logger.debug("Statement busy: %s", self._sql)
                return Step.BUSY
            raise _wrap(exc, self._sql) from exc
        if row is None:
            self._exhausted = True
            return Step.DONE
        return tuple(row)

    async def reset(self) -> None:
        """Rewind to the first row, keeping bound parameters."""
        self._check_usable()
        await self._rewind()

    async def bind(self, params: Params) -> None:
        """Set parameters for the next execution, rewinding an open cursor first."""
        self._check_usable()
        await self._rewind()
        self._params = _copy_params(params)

    async def column_names(self) -> tuple[str, ...]:
        """Return the statement's output column names, computed once."""
        self._check_usable()
        if self._columns is None:
            with engine_errors(self._sql):
                await self._describe()
        return self._columns or ()

    async def _describe(self) -> None:
        if self._shape is None:
            # Prepared without parameter values; explain with the bound ones
            self._shape = await self._engine.explain(self._sql, self._params)
        if not self._shape.returns_rows:
            self._columns = ()
        elif self._shape.writes:
            self._columns = await self._describe_in_savepoint()
        else:
            await self._open()

    async def _describe_in_savepoint(self) -> tuple[str, ...]:
        conn = self._engine.connection
        await self._engine.exec("SAVEPOINT column_names")
        try:
            cursor = await conn.execute(self._sql, self._params)
            try:
                return _column_names(cursor.description)
            finally:
                await cursor.close()
        finally:
            await self._engine.exec("ROLLBACK TO SAVEPOINT column_names")
            await self._engine.exec("RELEASE SAVEPOINT column_names")

    async def finalize(self) -> None:
        """Release the cursor. Finalizing twice is a no-op."""
        if self._finalized:
            return
        if not self._engine.closed:
            await self._rewind()
        self._finalized = True


class SQLiteEngine:
    """SQLite implementation of the Engine protocol.

    Passes all calls through to the underlying aiosqlite.Connection and
    converts sqlite3 exceptions into EngineError. The raw connection is
    exposed as ``connection`` for the statements prepared on it.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        """Initialize with an open aiosqlite connection."""
        self._conn = conn
        self._closed = False

    @property
    def connection(self) -> aiosqlite.Connection:
        """The wrapped aiosqlite connection."""
        return self._conn

    @property
    def closed(self) -> bool:
        """True once close() has run."""
        return self._closed

    @property
    def in_transaction(self) -> bool:
        """True while SQLite has a transaction open on this handle."""
        return self._conn.in_transaction

    async def exec(self, sql: str, params: Params = ()) -> int:
        """Execute a single statement and return the number of rows affected."""
        with engine_errors(sql):
            cursor = await self._conn.execute(sql, _copy_params(params))
            try:
                return cursor.rowcount
            finally:
                await cursor.close()

    async def query(self, sql: str, params: Params = ()) -> tuple[tuple[str, ...], list[RawRow]]:
        """Run a query and return ``(column_names, rows)``."""
        with engine_errors(sql):
            cursor = await self._conn.execute(sql, _copy_params(params))
            try:
                columns = _column_names(cursor.description)
                rows = [tuple(row) for row in await cursor.fetchall()]
            finally:
                await cursor.close()
        return columns, rows

    async def explain(self, sql: str, params: Params = ()) -> _Shape:
        """Compile ``sql`` without running it and report what it would do.

        Raises sqlite3 errors unwrapped; callers convert them.
        """
        if _is_explain(sql):
            # Already an EXPLAIN: running it only reads the compiled program
            cursor = await self._conn.execute(sql, _copy_params(params))
            await cursor.close()
            return _Shape(returns_rows=True, writes=False)
        cursor = await self._conn.execute(f"EXPLAIN {sql}", _copy_params(params))
        try:
            program = await cursor.fetchall()
        finally:
            await cursor.close()
        return _shape_of(program)

    async def prepare(self, sql: str) -> SQLiteStatement:
        """Compile a statement without running it.

        The SQL goes through ``explain`` so syntax errors and unknown
        tables fail here. A probe that only lacks parameter values means
        the statement compiled; its bindings are checked on first step.
        """
        shape = None
        with engine_errors(sql):
            try:
                shape = await self.explain(sql)
            except sqlite3.ProgrammingError as exc:
                if not _needs_bindings(exc):
                    raise
        return SQLiteStatement(self, sql, shape)

    def owns(self, statement: EngineStatement) -> bool:
        """Return True if the statement was prepared on this handle."""
        return isinstance(statement, SQLiteStatement) and statement._engine is self

    async def close(self) -> None:
        """Close the database connection. Only the first call does anything."""
        if self._closed:
            return
        self._closed = True
        await self._conn.close()
