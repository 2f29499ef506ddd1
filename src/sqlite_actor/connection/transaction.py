"""Transaction helpers built on the actor's begin/commit/rollback requests.

Each helper is a sequence of separate requests: other callers' requests
can be served between ``begin`` and ``commit``. Nesting helpers gives
savepoints, so an inner failure only undoes the inner block.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from sqlite_actor.connection.actor import ConnectionActor

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _rollback_after(conn: ConnectionActor, original: BaseException, level: int) -> None:
    """Roll back ``level`` after a failure without letting a rollback error replace it.

    The rollback is conditional on the level, so a timed-out begin or
    commit that the actor still serves later is never followed by a
    rollback of some other level.
    """
    try:
        await conn.rollback(level=level)
    except Exception as rollback_exc:
        logger.warning(
            "Rollback after %s failed: %s", type(original).__name__, rollback_exc
        )
        original.add_note(f"rollback also failed: {rollback_exc}")


@asynccontextmanager
async def transaction(conn: ConnectionActor) -> AsyncIterator[ConnectionActor]:
    """Run the block inside a transaction level.

    Commits when the block finishes. If the block (or the commit) raises,
    rolls the level back and re-raises the original exception. If
    ``begin`` fails, the exception propagates and the block never runs.

    Usage::

        async with transaction(conn):
            await conn.execute("INSERT …")
            async with transaction(conn):      # nested: a savepoint
                await conn.execute("UPDATE …")
    """
    outer = conn.level
    try:
        level = await conn.begin()
    except (TimeoutError, asyncio.CancelledError) as exc:
        # The begin is still queued and may yet open the level
        await _rollback_after(conn, exc, outer + 1)
        raise
    try:
        yield conn
        await conn.commit()
    except BaseException as exc:
        await _rollback_after(conn, exc, level)
        raise


async def run_in_transaction(conn: ConnectionActor, work: Callable[[], Awaitable[T]]) -> T:
    """Call ``work`` inside a transaction level and return its result."""
    async with transaction(conn):
        return await work()
