"""Serialized access to one SQLite connection with nested transactions."""

from sqlite_actor.connection import (
    ConnectionActor,
    StatementRegistry,
    open_connection,
    run_in_transaction,
    transaction,
)
from sqlite_actor.db.results import Step
from sqlite_actor.errors import (
    ConnectionClosedError,
    EngineError,
    SQLActorError,
    StatementError,
    TransactionStateError,
    UnknownStatementError,
)

__all__ = [
    "ConnectionActor",
    "ConnectionClosedError",
    "EngineError",
    "SQLActorError",
    "StatementError",
    "StatementRegistry",
    "Step",
    "TransactionStateError",
    "UnknownStatementError",
    "open_connection",
    "run_in_transaction",
    "transaction",
]
