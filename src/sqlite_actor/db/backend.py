"""Engine protocol — the capability set the connection actor consumes.

The actor programs against these protocols only. ``SQLiteEngine`` is the
production implementation; tests substitute a recording fake to check the
exact SQL issued by the transaction nesting machine.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from sqlite_actor.db.results import Step

Params = Sequence[Any] | Mapping[str, Any]
RawRow = tuple[Any, ...]


@runtime_checkable
class EngineStatement(Protocol):
    """A compiled, stateful query cursor owned by the engine."""

    @property
    def sql(self) -> str:
        """The SQL text the statement was prepared from."""
        ...

    @property
    def finalized(self) -> bool:
        """True once the statement has been disposed of."""
        ...

    async def step(self) -> RawRow | Step:
        """Advance the cursor and return the raw row, or a sentinel."""
        ...

    async def reset(self) -> None:
        """Rewind to the first row, keeping bound parameters."""
        ...

    async def bind(self, params: Params) -> None:
        """Set parameter values for the next execution."""
        ...

    async def column_names(self) -> tuple[str, ...]:
        """Return the statement's output column names."""
        ...

    async def finalize(self) -> None:
        """Release the engine-side cursor."""
        ...


@runtime_checkable
class Engine(Protocol):
    """One open database handle."""

    async def exec(self, sql: str, params: Params = ()) -> int:
        """Execute a single statement and return the number of rows affected."""
        ...

    async def query(self, sql: str, params: Params = ()) -> tuple[tuple[str, ...], list[RawRow]]:
        """Run a query and return ``(column_names, rows)``."""
        ...

    async def prepare(self, sql: str) -> EngineStatement:
        """Compile a statement for stepping."""
        ...

    def owns(self, statement: EngineStatement) -> bool:
        """Return True if the statement was prepared on this handle."""
        ...

    async def close(self) -> None:
        """Close the handle. Safe to call more than once."""
        ...
