"""
UsersConnectionRepository — finds the local users behind a provider identity.

Lookups here run across all users and only read the owning ``user_id`` of
each matching connection. Per-user work is delegated to
``ConnectionRepository`` instances created by ``create_connection_repository``.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from connectors.base import Connection
from connectors.encryption import TextEncryptor
from connectors.exceptions import InvalidArgument
from connectors.interceptors import ConnectionInterceptor
from connectors.registry import ConnectionFactoryRegistry
from connectors.repository import ConnectionRepository
from database.helpers import query_for_list, user_id_mapper
from database.models import get_tables

logger = logging.getLogger(__name__)


class ConnectionSignUp(Protocol):
    """Creates a local user for a provider identity nobody owns yet."""

    async def execute(self, connection: Connection) -> Optional[str]:
        """Return the new local user id, or None to require an explicit signup."""
        ...


class UsersConnectionRepository:
    """Entry point to connection data across all local users."""

    def __init__(
        self,
        locator: ConnectionFactoryRegistry,
        text_encryptor: TextEncryptor,
        session_factory: async_sessionmaker[AsyncSession],
        kind_prefix: str = "",
        connection_signup: Optional[ConnectionSignUp] = None,
        interceptors: Iterable[ConnectionInterceptor] = (),
    ):
        self._locator = locator
        self._text_encryptor = text_encryptor
        self._session_factory = session_factory
        self._kind_prefix = kind_prefix or ""
        self._interceptors: List[ConnectionInterceptor] = list(interceptors)
        # When set, a provider sign-in with no matching local user creates one
        # implicitly instead of requiring an explicit signup.
        self.connection_signup = connection_signup

    @property
    def locator(self) -> ConnectionFactoryRegistry:
        return self._locator

    @property
    def kind_prefix(self) -> str:
        return self._kind_prefix

    def add_interceptor(self, interceptor: ConnectionInterceptor) -> None:
        self._interceptors.append(interceptor)

    def set_interceptors(self, interceptors: Iterable[ConnectionInterceptor]) -> None:
        self._interceptors.extend(interceptors)

    async def find_user_ids_with_connection(self, connection: Connection) -> List[str]:
        """Local user ids connected to this provider identity.

        With no owner and a ``connection_signup`` configured, the callback may
        provision a user; that user then gets the connection and is returned.
        """
        key = connection.key
        t = get_tables(self._kind_prefix).user_connections
        statement = select(t.c.user_id).where(
            t.c.provider_id == key.provider_id,
            t.c.provider_user_id == key.provider_user_id,
        )
        async with self._session_factory() as session:
            local_user_ids = await query_for_list(session, statement, user_id_mapper)

        if not local_user_ids and self.connection_signup is not None:
            new_user_id = await self.connection_signup.execute(connection)
            if new_user_id:
                await self.create_connection_repository(new_user_id).add_connection(connection)
                logger.info("Provisioned user %s from %s sign-in", new_user_id, key.provider_id)
                return [new_user_id]
        return local_user_ids

    async def find_user_ids_connected_to(
        self, provider_id: str, provider_user_ids: Iterable[str]
    ) -> Set[str]:
        """Local user ids connected to any of the given provider users."""
        provider_user_ids = list(provider_user_ids)
        if not provider_user_ids:
            return set()
        t = get_tables(self._kind_prefix).user_connections
        statement = select(t.c.user_id).where(
            t.c.provider_id == provider_id,
            t.c.provider_user_id.in_(provider_user_ids),
        )
        async with self._session_factory() as session:
            return set(await query_for_list(session, statement, user_id_mapper))

    def create_connection_repository(self, user_id: str) -> ConnectionRepository:
        if not user_id:
            raise InvalidArgument("user_id cannot be empty")
        return ConnectionRepository(
            user_id,
            self._locator,
            self._text_encryptor,
            self._session_factory,
            kind_prefix=self._kind_prefix,
            interceptors=self._interceptors,
        )
