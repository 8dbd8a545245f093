"""Errors raised by the connection repositories and the provider registry."""

from __future__ import annotations

from connectors.base import ConnectionKey


class ConnectionRepositoryError(Exception):
    """Base class for connection repository errors."""


class DuplicateConnection(ConnectionRepositoryError):
    """The user already has a connection with this key."""

    def __init__(self, key: ConnectionKey):
        self.key = key
        super().__init__(f"Connection {key} already exists")


class NoSuchConnection(ConnectionRepositoryError):
    """No single connection matches the requested key."""

    def __init__(self, key: ConnectionKey):
        self.key = key
        super().__init__(f"No connection {key}")


class NotConnected(ConnectionRepositoryError):
    """The user has no primary connection to the provider."""

    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Not connected to provider '{provider_id}'")


class InvalidArgument(ConnectionRepositoryError, ValueError):
    """A required argument was empty or missing."""


class NoSuchProvider(ValueError):
    """A provider id or api type that no registered factory handles."""
