"""Tests for the string-keyed statement registry."""

import pytest

from sqlite_actor.db.results import Step
from sqlite_actor.errors import EngineError, UnknownStatementError


@pytest.mark.asyncio
async def test_prepare_assigns_sequential_ids(registry):
    first = await registry.prepare("SELECT name FROM test")
    second = await registry.prepare("SELECT age FROM test")
    assert first.id == "stmt-00001"
    assert second.id == "stmt-00002"
    assert len(registry) == 2
    assert "stmt-00001" in registry


@pytest.mark.asyncio
async def test_failed_prepare_registers_nothing(registry):
    with pytest.raises(EngineError):
        await registry.prepare("SELECT * FROM nope")
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_step_tracks_progress(registry):
    info = await registry.prepare("SELECT age FROM test WHERE age > ?1")
    await registry.bind(info.id, [25])
    assert await registry.step(info.id) == {"age": 28}
    assert await registry.step(info.id) == {"age": 33}
    assert await registry.step(info.id) is Step.DONE

    tracked = registry.info(info.id)
    assert tracked.rows_returned == 2
    assert tracked.exhausted
    assert tracked.params == [25]


@pytest.mark.asyncio
async def test_reset_clears_progress(registry):
    info = await registry.prepare("SELECT name FROM test")
    await registry.step(info.id)
    await registry.reset(info.id)
    assert registry.info(info.id).rows_returned == 0
    assert await registry.step(info.id) == {"name": "mary"}


@pytest.mark.asyncio
async def test_column_names_recorded(registry):
    info = await registry.prepare("SELECT * FROM test")
    columns = await registry.column_names(info.id)
    assert columns == ("name", "age", "height", "face_image")
    assert registry.info(info.id).columns == columns


@pytest.mark.asyncio
async def test_finalize_forgets_id(registry):
    info = await registry.prepare("SELECT name FROM test")
    handle = registry.get(info.id)
    await registry.finalize(info.id)
    assert info.id not in registry
    assert handle.finalized
    with pytest.raises(UnknownStatementError):
        await registry.step(info.id)


@pytest.mark.asyncio
async def test_unknown_id(registry):
    with pytest.raises(UnknownStatementError, match="unknown statement 'stmt-99999'"):
        registry.get("stmt-99999")


@pytest.mark.asyncio
async def test_finalize_all(registry):
    await registry.prepare("SELECT name FROM test")
    await registry.prepare("SELECT age FROM test")
    assert await registry.finalize_all() == 2
    assert len(registry) == 0
    assert registry.all() == []


@pytest.mark.asyncio
async def test_finalize_all_after_connection_closed(registry, conn):
    await registry.prepare("SELECT name FROM test")
    await conn.aclose()
    assert await registry.finalize_all() == 1
