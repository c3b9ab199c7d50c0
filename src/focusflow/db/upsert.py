"""Dialect-aware INSERT .. ON CONFLICT support."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def dialect_insert(db: AsyncSession, table: Any) -> Any:  # noqa: ANN401
    """Return an insert() for ``table`` that supports on_conflict_do_update/do_nothing."""
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        msg = f"Upserts are not supported on the {dialect} dialect"
        raise RuntimeError(msg)
    return insert(table)
