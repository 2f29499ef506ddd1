"""FastMCP server with lifespan management and tool registration."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from sqlite_actor.config import get_call_timeout, get_db_path, get_log_level
from sqlite_actor.connection.actor import open_connection
from sqlite_actor.connection.registry import StatementRegistry
from sqlite_actor.tools.sql_execute import register_sql_execute
from sqlite_actor.tools.sql_query import register_sql_query
from sqlite_actor.tools.sql_statement import register_sql_statement
from sqlite_actor.tools.sql_transaction import register_sql_transaction


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Own one connection actor for the lifetime of the server."""
    # Configure logging to stderr (stdout is MCP stdio transport)
    logging.basicConfig(
        level=getattr(logging, get_log_level(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    db_path = get_db_path()
    logger.info("Opening database at %s", db_path)
    conn = await open_connection(db_path, call_timeout=get_call_timeout())
    statements = StatementRegistry(conn)

    try:
        yield {"conn": conn, "statements": statements}
    finally:
        leaked = await statements.finalize_all()
        if leaked:
            logger.info("Finalized %d prepared statement(s) left open", leaked)
        if conn.level:
            logger.warning(
                "Closing with %d open transaction level(s); SQLite rolls them back", conn.level
            )
        await conn.aclose()
        logger.info("Database connection closed")


_INSTRUCTIONS = """\
This server gives you one SQLite connection. Every request is served in \
order, one at a time, so a sequence of calls behaves like a single client.

QUERYING:
- sql_query: Run a SELECT and get the rows back as a table. Pass values \
through params (? or ?1 placeholders, or :name with a map) rather than \
pasting them into the SQL.
- sql_execute: Run one INSERT, UPDATE, DELETE or DDL statement.

PREPARED STATEMENTS — for large results or repeated queries:
- sql_prepare returns an id such as stmt-00001.
- sql_step fetches the next row(s); [done] means no more rows.
- sql_bind sets parameter values, sql_reset rewinds, sql_columns lists columns.
- sql_finalize releases the statement when you are finished with it.

TRANSACTIONS nest:
- sql_transaction begin opens a transaction; begin again opens a savepoint.
- commit / rollback act on the innermost level only.
- sql_batch runs a list of statements atomically in one call.
"""


def create_server() -> FastMCP:
    """Create and configure the MCP server with all tools."""
    mcp = FastMCP(
        "sqlite-actor",
        instructions=_INSTRUCTIONS,
        lifespan=lifespan,
    )

    register_sql_query(mcp)
    register_sql_execute(mcp)
    register_sql_statement(mcp)
    register_sql_transaction(mcp)

    return mcp
