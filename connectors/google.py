"""
GoogleConnectionFactory — builds connections to Google accounts.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from config.settings import config
from connectors.base import ConnectionData, ConnectionFactory

_GOOGLE_API = "https://www.googleapis.com"


class GoogleApi:
    """Authorised Google API binding; carries the OAuth2 bearer token."""

    base_url = _GOOGLE_API

    def __init__(self, access_token: Optional[str], refresh_token: Optional[str] = None):
        self.access_token = access_token
        self.refresh_token = refresh_token

    @property
    def is_authorized(self) -> bool:
        return bool(self.access_token)

    def headers(self) -> Dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}


class GoogleConnectionFactory(ConnectionFactory):
    """Connection factory for Google."""

    @property
    def provider_id(self) -> str:
        return "google"

    @property
    def display_name(self) -> str:
        return "Google"

    @property
    def api_type(self) -> type:
        return GoogleApi

    @property
    def scopes(self) -> List[str]:
        return [
            "openid",
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
        ]

    def is_configured(self) -> bool:
        return bool(config.google_client_id and config.google_client_secret)

    def create_api(self, data: ConnectionData) -> GoogleApi:
        return GoogleApi(data.access_token, data.refresh_token)
