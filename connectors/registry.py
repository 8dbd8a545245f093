"""
ConnectionFactoryRegistry — locates connection factories by provider id or api type.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set

from connectors.base import ConnectionFactory
from connectors.exceptions import NoSuchProvider
from connectors.github import GitHubConnectionFactory
from connectors.google import GoogleConnectionFactory

logger = logging.getLogger(__name__)

# ── All built-in factories — add new ones here ───────────────────────────


def _builtin_factories() -> List[ConnectionFactory]:
    return [
        GitHubConnectionFactory(),
        GoogleConnectionFactory(),
    ]


class ConnectionFactoryRegistry:
    """Singleton registry for all provider connection factories."""

    _instance: Optional["ConnectionFactoryRegistry"] = None

    def __new__(cls) -> "ConnectionFactoryRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._factories = {}
            cls._instance._by_api_type = {}
            cls._instance._discovered = False
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton (tests, reconfiguration)."""
        cls._instance = None

    def register(self, factory: ConnectionFactory) -> None:
        if factory.provider_id in self._factories:
            raise ValueError(f"A factory for provider '{factory.provider_id}' is already registered")
        if factory.api_type in self._by_api_type:
            raise ValueError(f"A factory for api type {factory.api_type.__name__} is already registered")
        self._factories[factory.provider_id] = factory
        self._by_api_type[factory.api_type] = factory
        logger.info(
            "Connection factory registered: %s (%s)",
            factory.display_name,
            factory.provider_id,
        )

    def discover(self) -> None:
        """Register all configured built-in factories."""
        if self._discovered:
            return
        for factory in _builtin_factories():
            if factory.provider_id in self._factories:
                continue
            if factory.is_configured():
                self.register(factory)
            else:
                logger.warning(
                    "Provider %s skipped — not configured (missing client_id/secret)",
                    factory.provider_id,
                )
        self._discovered = True

    def get_connection_factory(self, provider_id: str) -> ConnectionFactory:
        factory = self._factories.get(provider_id)
        if factory is None:
            raise NoSuchProvider(f"No connection factory for provider id '{provider_id}'")
        return factory

    def get_connection_factory_for_api(self, api_type: type) -> ConnectionFactory:
        factory = self._by_api_type.get(api_type)
        if factory is None:
            raise NoSuchProvider(f"No connection factory for api type {api_type!r}")
        return factory

    def provider_id_for(self, api_type: type) -> str:
        return self.get_connection_factory_for_api(api_type).provider_id

    def registered_provider_ids(self) -> Set[str]:
        return set(self._factories)

    def list_providers(self) -> List[Dict[str, str]]:
        """Return info about all registered providers."""
        return [
            {
                "provider": f.provider_id,
                "display_name": f.display_name,
                "scopes": " ".join(f.scopes),
            }
            for f in sorted(self._factories.values(), key=lambda f: f.provider_id)
        ]
