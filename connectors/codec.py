"""
Conversion between persisted connection records and ``ConnectionData``.

Secrets (access token, secret, refresh token) are encrypted on the way in
and decrypted on the way out. ``None`` is never handed to the cipher.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from connectors.base import Connection, ConnectionData
from connectors.encryption import TextEncryptor
from connectors.registry import ConnectionFactoryRegistry

_SECRET_FIELDS = ("access_token", "secret", "refresh_token")
_MUTABLE_FIELDS = ("display_name", "profile_url", "image_url", *_SECRET_FIELDS, "expire_time")


class ConnectionCodec:
    def __init__(self, text_encryptor: TextEncryptor, locator: ConnectionFactoryRegistry):
        self._text_encryptor = text_encryptor
        self._locator = locator

    def to_record_fields(self, data: ConnectionData) -> Dict[str, Any]:
        """All persisted fields of ``data`` except the owner and the rank."""
        fields = {
            "provider_id": data.provider_id,
            "provider_user_id": data.provider_user_id,
        }
        fields.update(self.update_fields(data))
        return fields

    def update_fields(self, data: ConnectionData) -> Dict[str, Any]:
        """The fields an update may overwrite: profile, secrets and expiry."""
        fields = {name: getattr(data, name) for name in _MUTABLE_FIELDS}
        for name in _SECRET_FIELDS:
            fields[name] = self._encrypt(fields[name])
        return fields

    def from_record(self, record: Mapping[str, Any]) -> ConnectionData:
        return ConnectionData(
            provider_id=record["provider_id"],
            provider_user_id=record["provider_user_id"],
            display_name=record.get("display_name"),
            profile_url=record.get("profile_url"),
            image_url=record.get("image_url"),
            access_token=self._decrypt(record.get("access_token")),
            secret=self._decrypt(record.get("secret")),
            refresh_token=self._decrypt(record.get("refresh_token")),
            expire_time=record.get("expire_time"),
        )

    def to_connection(self, record: Mapping[str, Any]) -> Connection:
        data = self.from_record(record)
        return self._locator.get_connection_factory(data.provider_id).create_connection(data)

    def _encrypt(self, text: Optional[str]) -> Optional[str]:
        return self._text_encryptor.encrypt(text) if text is not None else None

    def _decrypt(self, encrypted_text: Optional[str]) -> Optional[str]:
        return self._text_encryptor.decrypt(encrypted_text) if encrypted_text is not None else None
