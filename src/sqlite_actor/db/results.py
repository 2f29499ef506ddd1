"""Result shaping: raw engine rows to field-name-keyed mappings."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any


class Step(Enum):
    """Non-row outcomes of stepping a prepared statement."""

    DONE = "done"
    BUSY = "busy"

    def __repr__(self) -> str:
        return f"Step.{self.name}"


def _is_bare_row(rows: Sequence[Any]) -> bool:
    """A tuple of plain values is one row; a tuple of tuples is many rows."""
    if not isinstance(rows, tuple) or not rows:
        return False
    return not all(isinstance(value, (tuple, list)) for value in rows)


def shape_rows(columns: Sequence[str], rows: Sequence[Any]) -> list[dict[str, Any]]:
    """Pair each row with the column names.

    ``rows`` is normally a list of tuples. A bare tuple of values is a
    single row and is shaped as a one-row result; an empty sequence gives
    an empty result.
    """
    if _is_bare_row(rows):
        rows = [rows]
    names = tuple(columns)
    shaped: list[dict[str, Any]] = []
    for row in rows:
        if len(row) != len(names):
            raise ValueError(f"row has {len(row)} values for {len(names)} columns")
        shaped.append(dict(zip(names, row, strict=True)))
    return shaped


def shape_row(columns: Sequence[str], row: tuple[Any, ...]) -> dict[str, Any]:
    """Shape a single stepped row into exactly one mapping."""
    return shape_rows(columns, [row])[0]
