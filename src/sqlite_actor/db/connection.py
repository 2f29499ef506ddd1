"""Engine factory: open a SQLite database for the connection actor."""

import logging
from pathlib import Path

import aiosqlite

from sqlite_actor.db.sqlite_backend import SQLiteEngine, engine_errors

logger = logging.getLogger(__name__)


async def create_engine(db_path: Path | str) -> SQLiteEngine:
    """Open a SQLite database and wrap it as an Engine.

    For in-memory databases, pass ":memory:".
    """
    db_path = str(db_path)

    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    with engine_errors(None):
        # isolation_level=None: transactions only begin when the actor says so
        conn = await aiosqlite.connect(db_path, isolation_level=None)

    engine = SQLiteEngine(conn)
    try:
        # Enable WAL mode for better concurrent read performance
        await engine.exec("PRAGMA journal_mode=WAL")
        await engine.exec("PRAGMA foreign_keys=ON")
    except Exception:
        await engine.close()
        raise

    logger.debug("SQLite engine opened at %s", db_path)
    return engine
