"""
Tests for the query helpers in database.helpers.
"""

import asyncio

import pytest
from sqlalchemy import func, insert, select
from sqlalchemy.dialects import postgresql

from connectors.base import ConnectionRecordKey
from database.helpers import (
    ensure_user_exists,
    insert_if_absent,
    query_for_list,
    query_for_map,
    user_id_mapper,
)
from database.models import get_tables


async def _seed(session_factory, rows):
    tables = get_tables()
    async with session_factory() as session:
        async with session.begin():
            for user_id, provider_id, provider_user_id, rank in rows:
                await ensure_user_exists(session, tables.users, user_id)
                await session.execute(
                    insert(tables.user_connections).values(
                        user_id=user_id,
                        provider_id=provider_id,
                        provider_user_id=provider_user_id,
                        rank=rank,
                    )
                )


class TestQueryHelpers:
    @pytest.mark.asyncio
    async def test_query_for_list_keeps_order_and_limit(self, session_factory):
        await _seed(session_factory, [("u1", "p", "a", 1), ("u1", "p", "b", 2), ("u1", "p", "c", 3)])
        t = get_tables().user_connections
        statement = select(t).order_by(t.c.rank.desc())

        async with session_factory() as session:
            everything = await query_for_list(session, statement, lambda r: r["provider_user_id"])
            first_two = await query_for_list(session, statement, lambda r: r["provider_user_id"], limit=2)

        assert everything == ["c", "b", "a"]
        assert first_two == ["c", "b"]

    @pytest.mark.asyncio
    async def test_keys_only_projection(self, session_factory):
        await _seed(session_factory, [("u1", "p", "a", 1), ("u2", "p", "a", 1)])
        t = get_tables().user_connections

        async with session_factory() as session:
            owners = await query_for_list(session, select(t.c.user_id), user_id_mapper)

        assert sorted(owners) == ["u1", "u2"]

    @pytest.mark.asyncio
    async def test_query_for_map_keys_by_identity(self, session_factory):
        await _seed(session_factory, [("u1", "p", "a", 1), ("u1", "q", "a", 1)])
        t = get_tables().user_connections

        async with session_factory() as session:
            ranks = await query_for_map(session, select(t), lambda r: r["rank"])

        assert ranks == {
            ConnectionRecordKey(user_id="u1", provider_id="p", provider_user_id="a"): 1,
            ConnectionRecordKey(user_id="u1", provider_id="q", provider_user_id="a"): 1,
        }

    @pytest.mark.asyncio
    async def test_ensure_user_exists_is_idempotent(self, session_factory):
        users = get_tables().users
        async with session_factory() as session:
            async with session.begin():
                await ensure_user_exists(session, users, "u1")
                await ensure_user_exists(session, users, "u1")

        async with session_factory() as session:
            count = (await session.execute(select(func.count()).select_from(users))).scalar_one()

        assert count == 1

    @pytest.mark.asyncio
    async def test_ensure_user_exists_concurrently(self, session_factory):
        users = get_tables().users

        async def create(user_id):
            async with session_factory() as session:
                async with session.begin():
                    await ensure_user_exists(session, users, user_id)

        results = await asyncio.gather(create("u1"), create("u1"), return_exceptions=True)

        assert results == [None, None]
        async with session_factory() as session:
            count = (await session.execute(select(func.count()).select_from(users))).scalar_one()
        assert count == 1


class TestInsertIfAbsent:
    def test_postgresql_ignores_conflicts(self):
        statement = insert_if_absent("postgresql", get_tables().users, user_id="u1")

        assert "ON CONFLICT DO NOTHING" in str(statement.compile(dialect=postgresql.dialect()))

    def test_unsupported_dialect(self):
        assert insert_if_absent("mssql", get_tables().users, user_id="u1") is None
