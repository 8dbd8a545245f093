"""
ProviderSignInAttempt — a provider sign-in that matched no local user.

The attempt is kept in the user's web session while they sign up. It holds
only the inert ``ConnectionData``; the provider registry and the users
connection repository are looked up again whenever they are needed, so the
value can be serialised with the session and restored in another request or
process.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

from connectors.base import Connection, ConnectionData
from connectors.factory import get_users_connection_repository


class ProviderSignInAttempt:
    """Models an attempt to sign in with a provider identity not yet linked locally.

    New users finish with :meth:`add_connection` once their local account
    exists. Existing users should sign in locally and connect the provider.
    """

    # Name of the session attribute attempts are stored under.
    SESSION_ATTRIBUTE = "connectors.signin.ProviderSignInAttempt"

    def __init__(self, connection_data: ConnectionData):
        self._connection_data = connection_data

    @classmethod
    def from_connection(cls, connection: Connection) -> "ProviderSignInAttempt":
        return cls(connection.create_data())

    @property
    def connection_data(self) -> ConnectionData:
        return self._connection_data

    def get_connection(self) -> Connection:
        """The connection to the provider account the visitor tried to sign in with.

        Useful to pre-populate a signup form from the provider profile.
        """
        locator = get_users_connection_repository().locator
        factory = locator.get_connection_factory(self._connection_data.provider_id)
        return factory.create_connection(self._connection_data)

    async def add_connection(self, user_id: str) -> None:
        """Connect the newly signed-up local user to the provider account.

        Raises ``DuplicateConnection`` if the user already has this connection.
        """
        repository = get_users_connection_repository().create_connection_repository(user_id)
        await repository.add_connection(self.get_connection())

    # ── session storage ─────────────────────────────────────────────────

    def to_session(self) -> Dict[str, Any]:
        return {"connection_data": self._connection_data.model_dump()}

    @classmethod
    def from_session(cls, payload: Mapping[str, Any]) -> "ProviderSignInAttempt":
        return cls(ConnectionData.model_validate(payload["connection_data"]))
