"""SQLite engine boundary and result shaping."""

from sqlite_actor.db.backend import Engine, EngineStatement, Params
from sqlite_actor.db.connection import create_engine
from sqlite_actor.db.results import Step, shape_row, shape_rows
from sqlite_actor.db.sqlite_backend import SQLiteEngine, SQLiteStatement

__all__ = [
    "Engine",
    "EngineStatement",
    "Params",
    "SQLiteEngine",
    "SQLiteStatement",
    "Step",
    "create_engine",
    "shape_row",
    "shape_rows",
]
