"""Tests for the sql_query and sql_execute MCP tools."""

import pytest

from sqlite_actor.tools.sql_execute import _run_execute
from sqlite_actor.tools.sql_query import _run_query


@pytest.mark.asyncio
async def test_query_table(conn):
    result = await _run_query(conn, "SELECT name, age FROM test ORDER BY age DESC", None, 10)
    lines = result.splitlines()
    assert lines[0] == "name | age"
    assert lines[2] == "bob  | 33"
    assert lines[-1] == "(3 rows)"


@pytest.mark.asyncio
async def test_query_with_params(conn):
    result = await _run_query(conn, "SELECT name FROM test WHERE age = ?", [28], 10)
    assert "alex" in result
    assert result.endswith("(1 row)")


@pytest.mark.asyncio
async def test_query_blob_and_null(conn):
    result = await _run_query(
        conn, "SELECT face_image FROM test WHERE name IN ('mary', 'alex') ORDER BY age", None, 10
    )
    assert "<blob 4 bytes>" in result
    assert "NULL" in result


@pytest.mark.asyncio
async def test_query_respects_max_rows(conn):
    result = await _run_query(conn, "SELECT name FROM test", None, 1)
    assert result.endswith("(3 rows, showing first 1)")


@pytest.mark.asyncio
async def test_query_error_is_returned(conn):
    result = await _run_query(conn, "SELECT * FROM nope", None, 10)
    assert result.startswith("Error: no such table: nope")


@pytest.mark.asyncio
async def test_execute_reports_rowcount(conn):
    result = await _run_execute(conn, "DELETE FROM test WHERE age < ?", [30])
    assert result == "OK, 2 rows affected"


@pytest.mark.asyncio
async def test_execute_ddl(conn):
    assert await _run_execute(conn, "CREATE TABLE other (x INTEGER)", None) == "OK"


@pytest.mark.asyncio
async def test_execute_error_is_returned(conn):
    await _run_execute(conn, "CREATE UNIQUE INDEX idx_name ON test(name)", None)
    result = await _run_execute(conn, "INSERT INTO test (name) VALUES ('mary')", None)
    assert result.startswith("Error: UNIQUE constraint failed: test.name")


@pytest.mark.asyncio
async def test_closed_connection_is_reported(conn):
    conn.close()
    assert await _run_query(conn, "SELECT 1", None, 10) == "Error: connection closed"
