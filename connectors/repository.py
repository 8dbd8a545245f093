"""
ConnectionRepository — one local user's connections to service providers.

Every statement is scoped to the user's ``user_id``. Connections to one
provider are ranked in creation order starting at 1; rank 1 is the primary
connection. Ranks are never compacted, so removals leave gaps.

Each mutation runs in a single transaction that commits on success and is
rolled back on any other way out. Interceptors run around it: ``before_*``
hooks ahead of any write, ``after_*`` hooks only once the commit succeeded.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from connectors.base import Connection, ConnectionKey, ConnectionRecordKey
from connectors.codec import ConnectionCodec
from connectors.encryption import TextEncryptor
from connectors.exceptions import DuplicateConnection, InvalidArgument, NoSuchConnection, NotConnected
from connectors.interceptors import ConnectionInterceptor, InterceptorRegistry
from connectors.registry import ConnectionFactoryRegistry
from database.helpers import ensure_user_exists, query_for_list, query_for_map
from database.models import get_tables

logger = logging.getLogger(__name__)

ProviderRef = Union[str, type]


class ConnectionRepository:
    """Data access for the connections of one local user."""

    def __init__(
        self,
        user_id: str,
        locator: ConnectionFactoryRegistry,
        text_encryptor: TextEncryptor,
        session_factory: async_sessionmaker[AsyncSession],
        kind_prefix: str = "",
        interceptors: Iterable[ConnectionInterceptor] = (),
    ):
        self._user_id = user_id
        self._locator = locator
        self._session_factory = session_factory
        self._tables = get_tables(kind_prefix or "")
        self._codec = ConnectionCodec(text_encryptor, locator)
        self._interceptors = InterceptorRegistry(interceptors)

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def locator(self) -> ConnectionFactoryRegistry:
        return self._locator

    def add_interceptor(self, interceptor: ConnectionInterceptor) -> None:
        self._interceptors.add(interceptor)

    def set_interceptors(self, interceptors: Iterable[ConnectionInterceptor]) -> None:
        for interceptor in interceptors:
            self.add_interceptor(interceptor)

    # ── Queries ─────────────────────────────────────────────────────────

    async def find_all_connections(self) -> Dict[str, List[Connection]]:
        """All connections grouped by provider id, each list ordered by rank.

        Every registered provider is present, with an empty list when the
        user has no connection to it.
        """
        connections: Dict[str, List[Connection]] = {
            provider_id: [] for provider_id in sorted(self._locator.registered_provider_ids())
        }
        t = self._tables.user_connections
        statement = (
            select(t)
            .where(t.c.user_id == self._user_id)
            .order_by(t.c.provider_id, t.c.rank)
        )
        async with self._session_factory() as session:
            result_list = await query_for_list(session, statement, self._codec.to_connection)
        for connection in result_list:
            connections.setdefault(connection.provider_id, []).append(connection)
        return connections

    async def find_connections(self, provider: ProviderRef) -> List[Connection]:
        """Connections to one provider (id or api type), ordered by rank."""
        provider_id = self._provider_id(provider)
        t = self._tables.user_connections
        statement = (
            select(t)
            .where(t.c.user_id == self._user_id, t.c.provider_id == provider_id)
            .order_by(t.c.rank)
        )
        async with self._session_factory() as session:
            return await query_for_list(session, statement, self._codec.to_connection)

    async def find_connections_to_users(
        self, provider_user_ids: Mapping[str, Sequence[str]]
    ) -> Dict[str, List[Optional[Connection]]]:
        """Look up connections to specific provider users.

        The result maps each provider id that had at least one hit to a list
        aligned with the requested provider user ids; a slot stays ``None``
        when there is no connection to that provider user. Id collections must
        be ordered sequences, since the slots follow their order.
        """
        for user_ids in provider_user_ids.values():
            if isinstance(user_ids, (set, frozenset)):
                raise InvalidArgument("Provider user ids must be an ordered sequence, not a set")
        if not any(provider_user_ids.values()):
            raise InvalidArgument("Unable to execute find: no provider users provided")

        t = self._tables.user_connections
        records = []
        async with self._session_factory() as session:
            for provider_id, user_ids in provider_user_ids.items():
                if not user_ids:
                    continue
                statement = (
                    select(t)
                    .where(
                        t.c.user_id == self._user_id,
                        t.c.provider_id == provider_id,
                        t.c.provider_user_id.in_(list(user_ids)),
                    )
                    .order_by(t.c.rank)
                )
                records.extend(await query_for_list(session, statement, dict))
        records.sort(key=lambda record: (record["provider_id"], record["rank"]))

        connections_for_users: Dict[str, List[Optional[Connection]]] = {}
        for record in records:
            connection = self._codec.to_connection(record)
            user_ids = list(provider_user_ids[connection.provider_id])
            slots = connections_for_users.setdefault(connection.provider_id, [None] * len(user_ids))
            slots[user_ids.index(connection.key.provider_user_id)] = connection
        return connections_for_users

    async def get_connection(self, key: ConnectionKey) -> Connection:
        t = self._tables.user_connections
        statement = select(t).where(
            t.c.user_id == self._user_id,
            t.c.provider_id == key.provider_id,
            t.c.provider_user_id == key.provider_user_id,
        )
        async with self._session_factory() as session:
            records = await query_for_list(session, statement, dict, limit=2)
        if len(records) > 1:
            logger.warning(
                "Found %d records for connection %s of user %s; expected one",
                len(records),
                key,
                self._user_id,
            )
            raise NoSuchConnection(key)
        if not records:
            raise NoSuchConnection(key)
        return self._codec.to_connection(records[0])

    async def get_connection_for_api(self, api_type: type, provider_user_id: str) -> Connection:
        provider_id = self._locator.provider_id_for(api_type)
        return await self.get_connection(
            ConnectionKey(provider_id=provider_id, provider_user_id=provider_user_id)
        )

    async def get_primary_connection(self, provider: ProviderRef) -> Connection:
        connection = await self.find_primary_connection(provider)
        if connection is None:
            raise NotConnected(self._provider_id(provider))
        return connection

    async def find_primary_connection(self, provider: ProviderRef) -> Optional[Connection]:
        provider_id = self._provider_id(provider)
        t = self._tables.user_connections
        statement = select(t).where(
            t.c.user_id == self._user_id,
            t.c.provider_id == provider_id,
            t.c.rank == 1,
        )
        async with self._session_factory() as session:
            result_list = await query_for_list(session, statement, self._codec.to_connection, limit=1)
        return result_list[0] if result_list else None

    # ── Mutations ───────────────────────────────────────────────────────

    async def add_connection(self, connection: Connection) -> None:
        """Persist a new connection with the next rank for its provider.

        Raises ``DuplicateConnection`` if the user already has it.
        """
        data = connection.create_data()
        record_key = self._record_key(connection.key)
        t = self._tables.user_connections

        await self._interceptors.before_create(self._user_id, connection)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    if await self._exists(session, record_key):
                        raise DuplicateConnection(connection.key)
                    await ensure_user_exists(session, self._tables.users, self._user_id)
                    rank = await self._next_rank(session, data.provider_id)
                    await session.execute(
                        insert(t).values(
                            user_id=self._user_id,
                            rank=rank,
                            **self._codec.to_record_fields(data),
                        )
                    )
        except IntegrityError as exc:
            # a concurrent add won the race for this key or this rank
            if await self._record_exists(record_key):
                raise DuplicateConnection(connection.key) from exc
            raise

        logger.info(
            "Added %s connection %s for user %s (rank %d)",
            data.provider_id,
            data.provider_user_id,
            self._user_id,
            rank,
        )
        await self._interceptors.after_create(self._user_id, connection)

    async def update_connection(self, connection: Connection) -> None:
        """Overwrite profile, secrets and expiry of an existing connection.

        A missing connection is logged and otherwise ignored.
        """
        data = connection.create_data()
        record_key = self._record_key(connection.key)

        await self._interceptors.before_update(self._user_id, connection)

        updated = False
        async with self._session_factory() as session:
            async with session.begin():
                if await self._exists(session, record_key, for_update=True):
                    await session.execute(
                        update(self._tables.user_connections)
                        .where(*self._key_clause(record_key))
                        .values(**self._codec.update_fields(data))
                    )
                    updated = True

        if not updated:
            logger.warning(
                "Could not update connection %s of user %s: no such connection exists",
                connection.key,
                self._user_id,
            )
            return

        logger.debug("Updated connection %s for user %s", connection.key, self._user_id)
        await self._interceptors.after_update(self._user_id, connection)

    async def remove_connections(self, provider_id: str) -> None:
        """Remove every connection the user has to ``provider_id``."""
        t = self._tables.user_connections
        statement = (
            select(t)
            .where(t.c.user_id == self._user_id, t.c.provider_id == provider_id)
            .order_by(t.c.rank)
        )
        async with self._session_factory() as session:
            result_map = await query_for_map(session, statement, self._codec.to_connection)
        if not result_map:
            return

        connections = list(result_map.values())
        await self._interceptors.before_remove(self._user_id, connections)

        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    delete(t).where(
                        t.c.user_id == self._user_id,
                        t.c.provider_id == provider_id,
                        t.c.provider_user_id.in_([k.provider_user_id for k in result_map]),
                    )
                )

        logger.info(
            "Removed %d %s connection(s) for user %s",
            len(connections),
            provider_id,
            self._user_id,
        )
        await self._interceptors.after_remove(self._user_id, connections)

    async def remove_connection(self, key: ConnectionKey) -> None:
        """Remove one connection. A missing connection is logged and ignored."""
        record_key = self._record_key(key)
        t = self._tables.user_connections

        removed: Optional[Connection] = None
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(t).where(*self._key_clause(record_key)).with_for_update()
                )
                record = result.mappings().first()
                if record is not None:
                    removed = self._codec.to_connection(record)
                    await self._interceptors.before_remove(self._user_id, [removed])
                    await session.execute(delete(t).where(*self._key_clause(record_key)))

        if removed is None:
            logger.warning(
                "Could not remove connection %s of user %s: no such connection exists",
                key,
                self._user_id,
            )
            return

        logger.info("Removed connection %s for user %s", key, self._user_id)
        await self._interceptors.after_remove(self._user_id, [removed])

    # ── Internals ───────────────────────────────────────────────────────

    def _provider_id(self, provider: ProviderRef) -> str:
        if isinstance(provider, str):
            return provider
        return self._locator.provider_id_for(provider)

    def _record_key(self, key: ConnectionKey) -> ConnectionRecordKey:
        return ConnectionRecordKey.for_connection(self._user_id, key)

    def _key_clause(self, record_key: ConnectionRecordKey) -> list:
        t = self._tables.user_connections
        return [t.c[name] == value for name, value in record_key.as_columns().items()]

    async def _exists(
        self, session: AsyncSession, record_key: ConnectionRecordKey, for_update: bool = False
    ) -> bool:
        statement = select(self._tables.user_connections.c.rank).where(*self._key_clause(record_key))
        if for_update:
            statement = statement.with_for_update()
        result = await session.execute(statement)
        return result.first() is not None

    async def _record_exists(self, record_key: ConnectionRecordKey) -> bool:
        async with self._session_factory() as session:
            return await self._exists(session, record_key)

    async def _next_rank(self, session: AsyncSession, provider_id: str) -> int:
        t = self._tables.user_connections
        result = await session.execute(
            select(func.max(t.c.rank)).where(
                t.c.user_id == self._user_id,
                t.c.provider_id == provider_id,
            )
        )
        max_rank = result.scalar()
        return (max_rank or 0) + 1
