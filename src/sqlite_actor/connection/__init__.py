"""Connection actor, transaction nesting and statement registry."""

from sqlite_actor.connection.actor import ConnectionActor, open_connection
from sqlite_actor.connection.registry import StatementRegistry
from sqlite_actor.connection.transaction import run_in_transaction, transaction

__all__ = [
    "ConnectionActor",
    "StatementRegistry",
    "open_connection",
    "run_in_transaction",
    "transaction",
]
