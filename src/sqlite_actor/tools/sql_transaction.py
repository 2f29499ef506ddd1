"""Transaction MCP tools — begin, commit, rollback and atomic batches."""

import logging
from typing import Annotated

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field

from sqlite_actor.connection.actor import ConnectionActor
from sqlite_actor.connection.transaction import run_in_transaction
from sqlite_actor.errors import SQLActorError
from sqlite_actor.models.statement import BatchStatement
from sqlite_actor.tools.formatters import format_error, format_level, format_rowcount

logger = logging.getLogger(__name__)

_MAX_BATCH = 100

_ACTIONS = {"begin", "commit", "rollback", "status"}


async def _transaction_action(conn: ConnectionActor, action: str) -> str:
    if action not in _ACTIONS:
        return f"Unknown action '{action}'. Use: {', '.join(sorted(_ACTIONS))}"

    try:
        if action == "begin":
            await conn.begin()
        elif action == "commit":
            await conn.commit()
        elif action == "rollback":
            await conn.rollback()
    except SQLActorError as exc:
        return f"{format_error(exc)} ({format_level(conn.level)})"

    if action == "status":
        return f"Status: {format_level(conn.level)}"
    return f"OK, {format_level(conn.level)}"


async def _run_batch(conn: ConnectionActor, statements: list[BatchStatement]) -> str:
    """Execute every statement in one transaction level, or none of them."""
    if not statements:
        return "Error: batch is empty."
    if len(statements) > _MAX_BATCH:
        return f"Error: Maximum {_MAX_BATCH} statements per batch (got {len(statements)})."

    results: list[str] = []

    async def _work() -> None:
        for i, stmt in enumerate(statements, start=1):
            rowcount = await conn.execute(stmt.sql, stmt.params)
            results.append(f"{i}. {format_rowcount(rowcount)}")

    try:
        await run_in_transaction(conn, _work)
    except SQLActorError as exc:
        failed = len(results) + 1
        logger.info("Batch rolled back at statement %d: %s", failed, exc)
        return f"Rolled back: statement {failed} failed. {format_error(exc)}"

    return "\n".join([f"Committed {len(statements)} statement(s).", *results])


def register_sql_transaction(mcp: FastMCP) -> None:
    """Register the transaction tools with the MCP server."""

    @mcp.tool()
    async def sql_transaction(
        action: Annotated[
            str,
            Field(description="Transaction action: begin, commit, rollback, status"),
        ],
        ctx: Context | None = None,
    ) -> str:
        """Control the connection's transaction nesting.

        Actions:
        - begin: Start a transaction; inside one, start a nested savepoint
        - commit: Commit the innermost level (releases a savepoint when nested)
        - rollback: Undo the innermost level only
        - status: Report the current nesting level
        """
        if ctx is None:
            raise RuntimeError("Context not injected")

        conn: ConnectionActor = ctx.lifespan_context["conn"]
        return await _transaction_action(conn, action)

    @mcp.tool()
    async def sql_batch(
        statements: Annotated[
            list[BatchStatement],
            Field(description=f"Statements to run atomically, in order (max {_MAX_BATCH})"),
        ],
        ctx: Context | None = None,
    ) -> str:
        """Run several statements atomically.

        All statements commit together, or the first failure rolls every
        one of them back. Works inside an open transaction too, as a
        nested savepoint.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")

        conn: ConnectionActor = ctx.lifespan_context["conn"]
        return await _run_batch(conn, statements)
