"""Tests for server-level functions."""

from unittest.mock import patch

import pytest
from fastmcp import FastMCP

from sqlite_actor.connection.actor import ConnectionActor
from sqlite_actor.connection.registry import StatementRegistry
from sqlite_actor.server import create_server, lifespan


def test_create_server():
    """Should build a named FastMCP server."""
    mcp = create_server()
    assert isinstance(mcp, FastMCP)
    assert mcp.name == "sqlite-actor"


@pytest.mark.asyncio
async def test_lifespan_opens_and_closes_connection():
    """Lifespan should yield a live connection and close it on exit."""
    with patch.dict("os.environ", {"SQLA_DB_PATH": ":memory:"}):
        async with lifespan(create_server()) as context:
            conn = context["conn"]
            assert isinstance(conn, ConnectionActor)
            assert isinstance(context["statements"], StatementRegistry)
            assert await conn.query("SELECT 1 AS one") == [{"one": 1}]
    assert conn.closed


@pytest.mark.asyncio
async def test_lifespan_finalizes_leftover_statements():
    """Statements still registered at shutdown should be finalized."""
    with patch.dict("os.environ", {"SQLA_DB_PATH": ":memory:"}):
        async with lifespan(create_server()) as context:
            statements = context["statements"]
            await statements.prepare("SELECT 1")
            await statements.prepare("SELECT 2")
            await context["conn"].begin()
    assert len(statements) == 0
    assert context["conn"].closed


@pytest.mark.asyncio
async def test_lifespan_uses_file_database(tmp_path):
    """A file path should be created, including missing parent directories."""
    db_path = tmp_path / "nested" / "data.db"
    with patch.dict("os.environ", {"SQLA_DB_PATH": str(db_path)}):
        async with lifespan(create_server()) as context:
            await context["conn"].execute("CREATE TABLE t (x INTEGER)")
    assert db_path.exists()
