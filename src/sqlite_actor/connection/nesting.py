"""Transaction nesting over one SQLite transaction plus savepoints.

The nesting level is the only state. Level 0 means no transaction, level 1
a top-level transaction, and level n > 1 means n - 1 savepoints are open
inside it. A savepoint is named after the level at which it was created,
so the matching commit or rollback at level n addresses ``S<n-1>``
without keeping a stack of names.
"""

from typing import NamedTuple

from sqlite_actor.errors import TransactionStateError


class Transition(NamedTuple):
    """SQL to issue and the level to adopt once the engine accepts it."""

    sql: str
    level: int


def savepoint_name(depth: int) -> str:
    """Name of the savepoint created by ``begin`` at the given level."""
    if depth < 1:
        raise ValueError(f"savepoints start at level 1, got {depth}")
    return f"S{depth}"


def _check_level(level: int) -> None:
    if level < 0:
        raise ValueError(f"nesting level cannot be negative, got {level}")


def begin(level: int) -> Transition:
    """Open a transaction, or a savepoint inside the current one."""
    _check_level(level)
    if level == 0:
        return Transition("BEGIN TRANSACTION", 1)
    return Transition(f"SAVEPOINT {savepoint_name(level)}", level + 1)


def commit(level: int) -> Transition:
    """Commit the transaction, or release the innermost savepoint."""
    _check_level(level)
    if level == 0:
        raise TransactionStateError("cannot commit: no transaction is open")
    if level == 1:
        return Transition("COMMIT", 0)
    return Transition(f"RELEASE SAVEPOINT {savepoint_name(level - 1)}", level - 1)


def rollback(level: int) -> Transition:
    """Roll back the transaction, or back to the innermost savepoint."""
    _check_level(level)
    if level == 0:
        raise TransactionStateError("cannot roll back: no transaction is open")
    if level == 1:
        return Transition("ROLLBACK", 0)
    return Transition(f"ROLLBACK TO SAVEPOINT {savepoint_name(level - 1)}", level - 1)
