"""
Database helper functions — run a query and map each record, ensure parent rows exist.

"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

from sqlalchemy import Insert, Select, Table, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from connectors.base import ConnectionRecordKey

logger = logging.getLogger(__name__)

T = TypeVar("T")

RecordMapper = Callable[[Mapping[str, Any]], T]


async def query_for_list(
    session: AsyncSession,
    statement: Select,
    mapper: RecordMapper[T],
    limit: Optional[int] = None,
) -> List[T]:
    """Execute ``statement`` and map every record, preserving result order."""
    if limit is not None:
        statement = statement.limit(limit)
    result = await session.execute(statement)
    return [mapper(record) for record in result.mappings()]


async def query_for_map(
    session: AsyncSession,
    statement: Select,
    mapper: RecordMapper[T],
) -> Dict[ConnectionRecordKey, T]:
    """Execute ``statement`` and map every record, keyed by the record's identity.

    The statement must select the three identity columns.
    """
    result = await session.execute(statement)
    return {record_key(record): mapper(record) for record in result.mappings()}


def record_key(record: Mapping[str, Any]) -> ConnectionRecordKey:
    return ConnectionRecordKey(
        user_id=record["user_id"],
        provider_id=record["provider_id"],
        provider_user_id=record["provider_user_id"],
    )


def user_id_mapper(record: Mapping[str, Any]) -> str:
    """Map a (keys-only) connection record to the id of the user that owns it."""
    return record["user_id"]


# Dialects with a native INSERT ... ON CONFLICT DO NOTHING.
_CONFLICT_IGNORING_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def insert_if_absent(dialect_name: str, table: Table, **values: Any) -> Optional[Insert]:
    """An INSERT that leaves an existing row with the same key untouched.

    Returns None for dialects without ``ON CONFLICT DO NOTHING``.
    """
    make_insert = _CONFLICT_IGNORING_INSERTS.get(dialect_name)
    if make_insert is None:
        return None
    return make_insert(table).values(**values).on_conflict_do_nothing()


async def ensure_user_exists(session: AsyncSession, users: Table, user_id: str) -> None:
    """Create the parent ``users`` row if one does not already exist (idempotent).

    Safe when several transactions create the same user at once: the losing
    insert is a no-op instead of a primary-key violation.
    """
    statement = insert_if_absent(session.get_bind().dialect.name, users, user_id=user_id)
    if statement is not None:
        await session.execute(statement)
        return

    try:
        async with session.begin_nested():
            await session.execute(insert(users).values(user_id=user_id))
    except IntegrityError:
        logger.debug("User row %s already exists", user_id)
