"""String-keyed registry of prepared statement handles.

Python callers pass statement handles around directly. Clients that can
only send strings (the MCP tools) go through this registry instead, which
maps generated ids like ``stmt-00001`` to handles prepared on one
connection. Statements are never finalized implicitly; callers finalize
them by id, and the server finalizes whatever is left on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlite_actor.db.results import Step
from sqlite_actor.errors import UnknownStatementError
from sqlite_actor.models.statement import StatementInfo

if TYPE_CHECKING:
    from sqlite_actor.connection.actor import ConnectionActor
    from sqlite_actor.db.backend import EngineStatement, Params

logger = logging.getLogger(__name__)


class StatementRegistry:
    """Prepared statements of one connection, addressed by id."""

    def __init__(self, conn: ConnectionActor) -> None:
        """Initialize for statements prepared on ``conn``."""
        self.conn = conn
        self._handles: dict[str, EngineStatement] = {}
        self._info: dict[str, StatementInfo] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, statement_id: object) -> bool:
        return statement_id in self._handles

    def get(self, statement_id: str) -> EngineStatement:
        """Return the handle for an id."""
        try:
            return self._handles[statement_id]
        except KeyError:
            raise UnknownStatementError(statement_id) from None

    def info(self, statement_id: str) -> StatementInfo:
        """Return the metadata for an id."""
        self.get(statement_id)
        return self._info[statement_id]

    def all(self) -> list[StatementInfo]:
        """All registered statements, oldest first."""
        return list(self._info.values())

    async def prepare(self, sql: str) -> StatementInfo:
        """Prepare ``sql`` on the connection and register the handle."""
        handle = await self.conn.prepare(sql)
        statement_id = f"stmt-{self._next_id:05d}"
        self._next_id += 1

        info = StatementInfo(id=statement_id, sql=sql, created_at=datetime.now(UTC))
        self._handles[statement_id] = handle
        self._info[statement_id] = info
        logger.info("Prepared %s: %s", statement_id, sql)
        return info

    async def step(self, statement_id: str) -> dict[str, Any] | Step:
        """Step a registered statement once."""
        handle = self.get(statement_id)
        result = await self.conn.step(handle)
        info = self._info[statement_id]
        if result is Step.DONE:
            info.exhausted = True
        elif isinstance(result, dict):
            info.rows_returned += 1
        return result

    async def bind(self, statement_id: str, params: Params) -> None:
        """Bind parameters; the statement starts over on its next step."""
        await self.conn.bind(self.get(statement_id), params)
        info = self._info[statement_id]
        info.params = dict(params) if isinstance(params, Mapping) else list(params)
        info.rows_returned = 0
        info.exhausted = False

    async def reset(self, statement_id: str) -> None:
        """Rewind a registered statement."""
        await self.conn.reset(self.get(statement_id))
        info = self._info[statement_id]
        info.rows_returned = 0
        info.exhausted = False

    async def column_names(self, statement_id: str) -> tuple[str, ...]:
        """Column names of a registered statement, remembered in its info."""
        columns = await self.conn.column_names(self.get(statement_id))
        self._info[statement_id].columns = columns
        return columns

    async def finalize(self, statement_id: str) -> None:
        """Finalize a statement and forget its id."""
        handle = self.get(statement_id)
        del self._handles[statement_id]
        del self._info[statement_id]
        if not self.conn.closed:
            await self.conn.finalize(handle)
        logger.debug("Finalized %s", statement_id)

    async def finalize_all(self) -> int:
        """Finalize every registered statement. Returns how many there were."""
        ids = list(self._handles)
        for statement_id in ids:
            await self.finalize(statement_id)
        return len(ids)
