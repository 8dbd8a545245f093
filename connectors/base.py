"""
Core connection types.

``ConnectionData`` is the inert, serialisable snapshot of a provider
connection. A ``ConnectionFactory`` (one per provider) turns that snapshot
into a live ``Connection`` carrying the provider's capability tag
(``api_type``), which interceptors are dispatched on.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ConnectionKey(BaseModel):
    """Identifies a remote identity: provider + the user's id at that provider."""

    model_config = {"frozen": True}

    provider_id: str
    provider_user_id: str

    def __str__(self) -> str:
        return f"{self.provider_id}:{self.provider_user_id}"


class ConnectionRecordKey(BaseModel):
    """Identity of a persisted connection record.

    One field per primary-key column, so no id component can ever collide
    with a separator.
    """

    model_config = {"frozen": True}

    user_id: str
    provider_id: str
    provider_user_id: str

    @classmethod
    def for_connection(cls, user_id: str, key: ConnectionKey) -> "ConnectionRecordKey":
        return cls(
            user_id=user_id,
            provider_id=key.provider_id,
            provider_user_id=key.provider_user_id,
        )

    @property
    def connection_key(self) -> ConnectionKey:
        return ConnectionKey(provider_id=self.provider_id, provider_user_id=self.provider_user_id)

    def as_columns(self) -> Dict[str, str]:
        return {
            "user_id": self.user_id,
            "provider_id": self.provider_id,
            "provider_user_id": self.provider_user_id,
        }


class ConnectionData(BaseModel):
    """Provider-agnostic connection snapshot. Secrets are plaintext here."""

    model_config = {"frozen": True}

    provider_id: str
    provider_user_id: str
    display_name: Optional[str] = None
    profile_url: Optional[str] = None
    image_url: Optional[str] = None
    access_token: Optional[str] = None
    secret: Optional[str] = None
    refresh_token: Optional[str] = None
    expire_time: Optional[int] = None  # epoch millis

    @property
    def key(self) -> ConnectionKey:
        return ConnectionKey(provider_id=self.provider_id, provider_user_id=self.provider_user_id)


class Connection:
    """A live connection to one provider account.

    ``api_type`` is fixed at construction and identifies the provider
    capability this connection exposes.
    """

    def __init__(self, data: ConnectionData, api_type: type, factory: "ConnectionFactory"):
        self._data = data
        self._api_type = api_type
        self._factory = factory
        self._api: Any = None

    @property
    def key(self) -> ConnectionKey:
        return self._data.key

    @property
    def provider_id(self) -> str:
        return self._data.provider_id

    @property
    def api_type(self) -> type:
        return self._api_type

    @property
    def display_name(self) -> Optional[str]:
        return self._data.display_name

    @property
    def profile_url(self) -> Optional[str]:
        return self._data.profile_url

    @property
    def image_url(self) -> Optional[str]:
        return self._data.image_url

    @property
    def expire_time(self) -> Optional[int]:
        return self._data.expire_time

    def has_expired(self, now_millis: int) -> bool:
        return self._data.expire_time is not None and self._data.expire_time <= now_millis

    @property
    def api(self) -> Any:
        """The provider API binding, built on first use from the current tokens."""
        if self._api is None:
            self._api = self._factory.create_api(self._data)
        return self._api

    def create_data(self) -> ConnectionData:
        return self._data

    def update(self, **changes: Any) -> None:
        """Replace profile / secret / expiry fields. The key cannot change."""
        if "provider_id" in changes or "provider_user_id" in changes:
            raise ValueError("A connection's provider identity is immutable")
        self._data = self._data.model_copy(update=changes)
        self._api = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Connection):
            return NotImplemented
        return self._api_type is other._api_type and self._data == other._data

    def __hash__(self) -> int:
        return hash(self._data.key)

    def __repr__(self) -> str:
        return f"Connection({self.key}, api_type={self._api_type.__name__})"


class ConnectionFactory(ABC):
    """Abstract base for all provider connection factories."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique slug: 'github', 'google', …"""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable: 'GitHub', 'Google', …"""
        ...

    @property
    @abstractmethod
    def api_type(self) -> type:
        """Capability tag carried by every connection this factory builds."""
        ...

    @property
    def scopes(self) -> List[str]:
        """OAuth scopes the provider is configured with."""
        return []

    # ── Construction ────────────────────────────────────────────────────

    @abstractmethod
    def create_api(self, data: ConnectionData) -> Any:
        """Build the provider API binding for ``data``."""
        ...

    def create_connection(self, data: ConnectionData) -> Connection:
        if data.provider_id != self.provider_id:
            raise ValueError(
                f"Connection data for '{data.provider_id}' given to the "
                f"'{self.provider_id}' factory"
            )
        return Connection(data, self.api_type, self)

    # ── Helpers ─────────────────────────────────────────────────────────

    def is_configured(self) -> bool:
        """
        Return True if this factory has all required config
        (client id / secret).
        """
        return True
