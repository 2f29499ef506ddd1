"""Compact output formatters for MCP tool responses."""

from collections.abc import Mapping, Sequence
from typing import Any

from sqlite_actor.db.results import Step
from sqlite_actor.models.statement import StatementInfo


def format_value(value: Any) -> str:
    """Render one column value: NULL for None, a size for blobs."""
    if value is None:
        return "NULL"
    if isinstance(value, bytes | bytearray | memoryview):
        return f"<blob {len(value)} bytes>"
    return str(value)


def format_row(row: Mapping[str, Any]) -> str:
    """Format: name=mary, age=22."""
    return ", ".join(f"{key}={format_value(value)}" for key, value in row.items())


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def format_table(rows: Sequence[Mapping[str, Any]], *, max_rows: int) -> str:
    """Aligned text table with a row count footer, truncated at max_rows."""
    if not rows:
        return "(0 rows)"

    columns = list(rows[0].keys())
    shown = rows[:max_rows]
    cells = [[format_value(row.get(col)) for col in columns] for row in shown]
    widths = [
        max(len(col), *(len(line[i]) for line in cells)) for i, col in enumerate(columns)
    ]

    lines = [" | ".join(col.ljust(w) for col, w in zip(columns, widths, strict=True)).rstrip()]
    lines.append("-+-".join("-" * w for w in widths))
    for line in cells:
        lines.append(" | ".join(v.ljust(w) for v, w in zip(line, widths, strict=True)).rstrip())

    footer = f"({_plural(len(rows), 'row')})"
    if len(rows) > max_rows:
        footer = f"({_plural(len(rows), 'row')}, showing first {max_rows})"
    lines.append(footer)
    return "\n".join(lines)


def format_step(result: Mapping[str, Any] | Step) -> str:
    """One stepped row, or the done / busy marker."""
    if result is Step.DONE:
        return "[done] no more rows"
    if result is Step.BUSY:
        return "[busy] database is busy, try again"
    return format_row(result)


def format_rowcount(rowcount: int) -> str:
    """Format the result of an execute."""
    if rowcount < 0:
        return "OK"
    return f"OK, {_plural(rowcount, 'row')} affected"


def format_statement_info(info: StatementInfo) -> str:
    """Format: [stmt-00001] SELECT ... | params: [25] | 2 rows read | done."""
    parts = [f"[{info.id}] {info.sql}"]
    if info.params:
        parts.append(f"params: {info.params}")
    if info.columns is not None:
        parts.append(f"columns: {', '.join(info.columns) or '(none)'}")
    parts.append(f"{_plural(info.rows_returned, 'row')} read")
    if info.exhausted:
        parts.append("done")
    return " | ".join(parts)


def format_error(exc: BaseException) -> str:
    """Error line returned to the MCP client, engine message verbatim."""
    return f"Error: {exc}"


def format_level(level: int) -> str:
    """Describe the nesting level."""
    if level == 0:
        return "no transaction open"
    if level == 1:
        return "transaction level 1"
    return f"transaction level {level} ({_plural(level - 1, 'savepoint')} open)"
