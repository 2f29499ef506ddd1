"""Exception hierarchy for the connection actor and its engine boundary."""

from __future__ import annotations


class SQLActorError(Exception):
    """Base class for all errors raised by sqlite_actor."""


class EngineError(SQLActorError):
    """An error reported by the SQLite engine, message kept verbatim."""

    def __init__(self, message: str, *, code: str | None = None, sql: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.sql = sql

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} ({self.code})"
        return self.message


class StatementError(SQLActorError):
    """A prepared statement was used in a way its state does not allow."""


class TransactionStateError(SQLActorError):
    """Commit or rollback was requested with no open transaction."""


class ConnectionClosedError(SQLActorError):
    """A request was sent to a connection whose actor has stopped."""

    def __init__(self, message: str = "connection closed") -> None:
        super().__init__(message)


class UnknownStatementError(SQLActorError, KeyError):
    """No registered statement has the given id."""

    def __init__(self, statement_id: str) -> None:
        super().__init__(statement_id)
        self.statement_id = statement_id

    def __str__(self) -> str:
        return f"unknown statement '{self.statement_id}'"
