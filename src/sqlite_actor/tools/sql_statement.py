"""Prepared statement MCP tools — prepare, step, bind, reset, columns, finalize."""

import logging
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from sqlite_actor.config import get_max_rows
from sqlite_actor.connection.registry import StatementRegistry
from sqlite_actor.db.results import Step
from sqlite_actor.errors import SQLActorError
from sqlite_actor.tools.formatters import (
    format_error,
    format_statement_info,
    format_step,
    format_table,
)

logger = logging.getLogger(__name__)


async def _prepare(registry: StatementRegistry, sql: str) -> str:
    try:
        info = await registry.prepare(sql)
    except SQLActorError as exc:
        return format_error(exc)
    return f"Prepared {format_statement_info(info)}"


async def _step(registry: StatementRegistry, statement_id: str, count: int) -> str:
    """Step up to ``count`` times, stopping early at done or busy."""
    rows = []
    marker: Step | None = None
    try:
        for _ in range(count):
            result = await registry.step(statement_id)
            if isinstance(result, Step):
                marker = result
                break
            rows.append(result)
    except SQLActorError as exc:
        if not rows:
            return format_error(exc)
        return f"{format_table(rows, max_rows=count)}\n{format_error(exc)}"

    if len(rows) == 1 and marker is None:
        return format_step(rows[0])
    lines = [format_table(rows, max_rows=count)] if rows else []
    if marker is not None:
        lines.append(format_step(marker))
    return "\n".join(lines)


async def _bind(
    registry: StatementRegistry, statement_id: str, params: list[object] | dict[str, object]
) -> str:
    try:
        await registry.bind(statement_id, params)
    except SQLActorError as exc:
        return format_error(exc)
    return f"Bound {format_statement_info(registry.info(statement_id))}"


async def _reset(registry: StatementRegistry, statement_id: str) -> str:
    try:
        await registry.reset(statement_id)
    except SQLActorError as exc:
        return format_error(exc)
    return f"Reset {statement_id}"


async def _columns(registry: StatementRegistry, statement_id: str) -> str:
    try:
        columns = await registry.column_names(statement_id)
    except SQLActorError as exc:
        return format_error(exc)
    return ", ".join(columns) if columns else "(no columns)"


async def _finalize(registry: StatementRegistry, statement_id: str) -> str:
    try:
        await registry.finalize(statement_id)
    except SQLActorError as exc:
        return format_error(exc)
    return f"Finalized {statement_id}"


def _list_statements(registry: StatementRegistry) -> str:
    infos = registry.all()
    if not infos:
        return "No prepared statements."
    return "\n".join(format_statement_info(info) for info in infos)


def register_sql_statement(mcp: FastMCP) -> None:
    """Register the prepared statement tools with the MCP server."""

    def _registry(ctx: Context | None) -> StatementRegistry:
        if ctx is None:
            raise RuntimeError("Context not injected")
        return ctx.lifespan_context["statements"]

    @mcp.tool()
    async def sql_prepare(
        sql: Annotated[str, Field(description="A single SQL statement to compile")],
        ctx: Context | None = None,
    ) -> str:
        """Compile a statement and return its id (e.g. stmt-00001).

        The statement is validated but not run. Step it with sql_step,
        bind values with sql_bind, and release it with sql_finalize.
        """
        return await _prepare(_registry(ctx), sql)

    @mcp.tool()
    async def sql_step(
        statement_id: Annotated[str, Field(description="Statement id from sql_prepare")],
        count: Annotated[
            int, Field(description="Maximum rows to fetch", ge=1, le=get_max_rows())
        ] = 1,
        ctx: Context | None = None,
    ) -> str:
        """Fetch the next row(s) of a prepared statement.

        Reports [done] once every row was returned; stepping again stays
        done until sql_reset.
        """
        return await _step(_registry(ctx), statement_id, count)

    @mcp.tool()
    async def sql_bind(
        statement_id: Annotated[str, Field(description="Statement id from sql_prepare")],
        params: Annotated[
            list[object] | dict[str, object],
            Field(description="Positional values for ?/?N placeholders, or a map for :name"),
        ],
        ctx: Context | None = None,
    ) -> str:
        """Bind parameter values. The statement restarts from its first row."""
        return await _bind(_registry(ctx), statement_id, params)

    @mcp.tool()
    async def sql_reset(
        statement_id: Annotated[str, Field(description="Statement id from sql_prepare")],
        ctx: Context | None = None,
    ) -> str:
        """Rewind a statement to its first row, keeping bound values."""
        return await _reset(_registry(ctx), statement_id)

    @mcp.tool()
    async def sql_columns(
        statement_id: Annotated[str, Field(description="Statement id from sql_prepare")],
        ctx: Context | None = None,
    ) -> str:
        """List the output column names of a prepared statement."""
        return await _columns(_registry(ctx), statement_id)

    @mcp.tool()
    async def sql_finalize(
        statement_id: Annotated[str, Field(description="Statement id from sql_prepare")],
        ctx: Context | None = None,
    ) -> str:
        """Release a prepared statement. Its id becomes invalid."""
        return await _finalize(_registry(ctx), statement_id)

    @mcp.tool()
    async def sql_statements(ctx: Context | None = None) -> str:
        """List prepared statements that have not been finalized."""
        return _list_statements(_registry(ctx))
