"""Environment-variable-based configuration."""

import os
from pathlib import Path


def get_db_path() -> Path | str:
    """Return the database path from SQLA_DB_PATH (``:memory:`` is passed through)."""
    raw = os.environ.get("SQLA_DB_PATH", "~/.local/share/sqlite_actor/data.db")
    if raw == ":memory:":
        return raw
    return Path(raw).expanduser()


def get_log_level() -> str:
    """Return the logging level from SQLA_LOG_LEVEL."""
    return os.environ.get("SQLA_LOG_LEVEL", "WARNING").upper()


def get_call_timeout() -> float | None:
    """Return the per-request reply timeout in seconds from SQLA_CALL_TIMEOUT.

    Unset or empty means callers wait for as long as the request takes.
    """
    raw = os.environ.get("SQLA_CALL_TIMEOUT", "").strip()
    if not raw:
        return None
    return float(raw)


def get_max_rows() -> int:
    """Return the row cap for tool output from SQLA_MAX_ROWS."""
    return int(os.environ.get("SQLA_MAX_ROWS", "200"))
