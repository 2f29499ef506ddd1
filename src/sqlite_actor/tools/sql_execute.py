"""sql_execute MCP tool — run a statement that changes the database."""

import logging
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from sqlite_actor.connection.actor import ConnectionActor
from sqlite_actor.errors import SQLActorError
from sqlite_actor.tools.formatters import format_error, format_rowcount

logger = logging.getLogger(__name__)


async def _run_execute(
    conn: ConnectionActor, sql: str, params: list[object] | dict[str, object] | None
) -> str:
    try:
        rowcount = await conn.execute(sql, params)
    except SQLActorError as exc:
        logger.debug("sql_execute failed: %s", exc)
        return format_error(exc)
    return format_rowcount(rowcount)


def register_sql_execute(mcp: FastMCP) -> None:
    """Register the sql_execute tool with the MCP server."""

    @mcp.tool()
    async def sql_execute(
        sql: Annotated[str, Field(description="One INSERT, UPDATE, DELETE or DDL statement")],
        params: Annotated[
            list[object] | dict[str, object] | None,
            Field(description="Positional values for ?/?N placeholders, or a map for :name"),
        ] = None,
        ctx: Context | None = None,
    ) -> str:
        """Execute one statement and report how many rows it affected.

        Outside an explicit transaction (sql_transaction begin) each statement commits
        on its own.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")

        conn: ConnectionActor = ctx.lifespan_context["conn"]
        return await _run_execute(conn, sql, params)
