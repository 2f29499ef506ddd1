"""Prepared statement metadata exposed through the MCP tools."""

from datetime import datetime

from pydantic import BaseModel, Field


class StatementInfo(BaseModel):
    """A registered prepared statement, addressed by its string id."""

    id: str
    sql: str
    params: list[object] | dict[str, object] = Field(default_factory=list)
    columns: tuple[str, ...] | None = None
    rows_returned: int = Field(default=0, ge=0)
    exhausted: bool = False
    created_at: datetime


class BatchStatement(BaseModel):
    """One statement of an atomic batch, with optional parameters."""

    sql: str = Field(min_length=1)
    params: list[object] | dict[str, object] | None = None
