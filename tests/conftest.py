"""
Shared fixtures: a provider registry with fake providers, a Fernet
encryptor and a fresh on-disk SQLite database per test.
"""

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet

from connectors.base import ConnectionData
from connectors.encryption import FernetTextEncryptor
from connectors.factory import set_users_connection_repository
from connectors.registry import ConnectionFactoryRegistry
from connectors.users_repository import UsersConnectionRepository
from database.session import build_engine, build_session_factory, create_schema
from fake_providers import FacebookConnectionFactory, TwitterConnectionFactory


@pytest.fixture
def locator():
    ConnectionFactoryRegistry.reset()
    registry = ConnectionFactoryRegistry()
    registry.register(FacebookConnectionFactory())
    registry.register(TwitterConnectionFactory())
    yield registry
    ConnectionFactoryRegistry.reset()


@pytest.fixture
def text_encryptor():
    return FernetTextEncryptor(Fernet.generate_key())


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'connections.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def users_repository(locator, text_encryptor, session_factory):
    repository = UsersConnectionRepository(locator, text_encryptor, session_factory)
    set_users_connection_repository(repository)
    yield repository
    set_users_connection_repository(None)


@pytest.fixture
def alice(users_repository):
    return users_repository.create_connection_repository("alice")


@pytest.fixture
def make_connection(locator):
    """Build a live connection: ``make_connection("facebook", "fb1", access_token=...)``."""

    def _make(provider_id, provider_user_id, **fields):
        fields.setdefault("display_name", f"{provider_id} user {provider_user_id}")
        fields.setdefault("access_token", f"{provider_user_id}-access")
        data = ConnectionData(provider_id=provider_id, provider_user_id=provider_user_id, **fields)
        return locator.get_connection_factory(provider_id).create_connection(data)

    return _make
