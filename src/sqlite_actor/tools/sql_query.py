"""sql_query MCP tool — run a query and return its rows."""

import logging
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from sqlite_actor.config import get_max_rows
from sqlite_actor.connection.actor import ConnectionActor
from sqlite_actor.errors import SQLActorError
from sqlite_actor.tools.formatters import format_error, format_table

logger = logging.getLogger(__name__)


async def _run_query(
    conn: ConnectionActor,
    sql: str,
    params: list[object] | dict[str, object] | None,
    max_rows: int,
) -> str:
    try:
        rows = await conn.query(sql, params)
    except SQLActorError as exc:
        logger.debug("sql_query failed: %s", exc)
        return format_error(exc)
    return format_table(rows, max_rows=max_rows)


def register_sql_query(mcp: FastMCP) -> None:
    """Register the sql_query tool with the MCP server."""

    @mcp.tool()
    async def sql_query(
        sql: Annotated[str, Field(description="A single SQL statement, usually a SELECT")],
        params: Annotated[
            list[object] | dict[str, object] | None,
            Field(description="Positional values for ?/?N placeholders, or a map for :name"),
        ] = None,
        ctx: Context | None = None,
    ) -> str:
        """Run a query and return the rows as a text table.

        Use ? or ?1, ?2 ... placeholders with params instead of pasting
        values into the SQL.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")

        conn: ConnectionActor = ctx.lifespan_context["conn"]
        return await _run_query(conn, sql, params, get_max_rows())
