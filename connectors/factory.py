"""
Process-wide wiring of the connection repositories.

``build_users_connection_repository`` assembles the provider registry, the
secret encryptor, the session factory and the table prefix from settings.
``get_users_connection_repository`` returns the shared instance that
request-independent code (e.g. ``ProviderSignInAttempt``) re-acquires.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings, config
from connectors.encryption import TextEncryptor, build_text_encryptor
from connectors.interceptors import ConnectionInterceptor
from connectors.registry import ConnectionFactoryRegistry
from connectors.users_repository import ConnectionSignUp, UsersConnectionRepository
from database.session import get_session_factory

logger = logging.getLogger(__name__)

_users_connection_repository: Optional[UsersConnectionRepository] = None


def build_users_connection_repository(
    settings: Settings = config,
    *,
    locator: Optional[ConnectionFactoryRegistry] = None,
    text_encryptor: Optional[TextEncryptor] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    connection_signup: Optional[ConnectionSignUp] = None,
    interceptors: Iterable[ConnectionInterceptor] = (),
) -> UsersConnectionRepository:
    if locator is None:
        locator = ConnectionFactoryRegistry()
        locator.discover()
    repository = UsersConnectionRepository(
        locator,
        text_encryptor or build_text_encryptor(settings.token_encryption_key),
        session_factory or get_session_factory(),
        kind_prefix=settings.kind_prefix,
        connection_signup=connection_signup,
        interceptors=interceptors,
    )
    logger.info(
        "Connection repository ready: providers=%s prefix=%r",
        sorted(locator.registered_provider_ids()),
        settings.kind_prefix,
    )
    return repository


def get_users_connection_repository() -> UsersConnectionRepository:
    """Return the process-wide repository, building it from settings on first use."""
    global _users_connection_repository
    if _users_connection_repository is None:
        _users_connection_repository = build_users_connection_repository()
    return _users_connection_repository


def set_users_connection_repository(repository: Optional[UsersConnectionRepository]) -> None:
    """Install (or clear, with None) the process-wide repository."""
    global _users_connection_repository
    _users_connection_repository = repository
