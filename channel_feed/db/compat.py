"""
Dialect-aware SQL constructs: PostgreSQL in production, SQLite in tests.

Both dialects support ``INSERT ... ON CONFLICT DO UPDATE`` but SQLAlchemy
exposes it through dialect-specific ``insert()`` constructs.
"""
from typing import Callable

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_UPSERT_INSERTS: dict[str, Callable] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_insert(db: AsyncSession, table) -> "postgresql.Insert | sqlite.Insert":
    """Return an ``insert()`` for ``table`` that supports ``on_conflict_do_update``."""
    dialect_name = db.bind.dialect.name
    try:
        factory = _UPSERT_INSERTS[dialect_name]
    except KeyError:
        raise NotImplementedError(f"upsert is not supported on dialect '{dialect_name}'") from None
    return factory(table)
