"""
SQLAlchemy table definitions for users and their provider connections.

Both tables share an optional name prefix so several tenants can live in
one database. Every connection row hangs under its owner's ``users`` row,
and its identity is the composite ``(user_id, provider_id, provider_user_id)``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import NamedTuple

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)


class ConnectionTables(NamedTuple):
    metadata: MetaData
    users: Table
    user_connections: Table


def _users_table(metadata: MetaData, prefix: str) -> Table:
    return Table(
        f"{prefix}users",
        metadata,
        Column("user_id", String(255), primary_key=True),
        Column("created_at", DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)),
    )


def _user_connections_table(metadata: MetaData, prefix: str) -> Table:
    users_name = f"{prefix}users"
    name = f"{prefix}user_connections"
    return Table(
        name,
        metadata,
        Column(
            "user_id",
            String(255),
            ForeignKey(f"{users_name}.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        Column("provider_id", String(64), primary_key=True),
        Column("provider_user_id", String(255), primary_key=True),
        Column("rank", Integer, nullable=False),
        Column("display_name", String(255)),
        Column("profile_url", String(512)),
        Column("image_url", String(512)),
        Column("access_token", Text),
        Column("secret", Text),
        Column("refresh_token", Text),
        Column("expire_time", BigInteger),
        UniqueConstraint("user_id", "provider_id", "rank", name=f"uq_{name}_rank"),
        Index(f"ix_{name}_provider_user", "provider_id", "provider_user_id"),
    )


@lru_cache(maxsize=None)
def get_tables(prefix: str = "") -> ConnectionTables:
    """Return the (cached) table pair for ``prefix``; one ``MetaData`` per prefix."""
    metadata = MetaData()
    return ConnectionTables(
        metadata=metadata,
        users=_users_table(metadata, prefix),
        user_connections=_user_connections_table(metadata, prefix),
    )
