"""Shared test fixtures."""

import pytest_asyncio

from sqlite_actor.connection.actor import ConnectionActor, open_connection
from sqlite_actor.connection.registry import StatementRegistry
from tests.fakes import RecordingEngine

CREATE_TABLE = "CREATE TABLE test (name TEXT, age INTEGER, height REAL, face_image BLOB)"

PEOPLE = [
    ("mary", 22, 1.65, b"\x89PNG"),
    ("alex", 28, 1.80, None),
    ("bob", 33, 1.75, b"\xff\xd8"),
]


async def create_table(conn: ConnectionActor) -> None:
    await conn.execute(CREATE_TABLE)


async def populate_people(conn: ConnectionActor) -> None:
    for person in PEOPLE:
        await conn.execute(
            "INSERT INTO test (name, age, height, face_image) VALUES (?, ?, ?, ?)", person
        )


@pytest_asyncio.fixture
async def conn():
    """In-memory connection actor with the populated test table."""
    actor = await open_connection(":memory:")
    await create_table(actor)
    await populate_people(actor)
    yield actor
    await actor.aclose()


@pytest_asyncio.fixture
async def registry(conn):
    """Statement registry over the populated connection."""
    return StatementRegistry(conn)


@pytest_asyncio.fixture
async def recording_engine():
    """A RecordingEngine not yet attached to an actor."""
    return RecordingEngine()


@pytest_asyncio.fixture
async def recorded(recording_engine):
    """Connection actor running on a RecordingEngine."""

    async def factory():
        return recording_engine

    actor = await ConnectionActor(factory, name="recorded").start()
    yield actor
    await actor.aclose()
