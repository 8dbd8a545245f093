"""
GitHubConnectionFactory — builds connections to GitHub accounts.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from config.settings import config
from connectors.base import ConnectionData, ConnectionFactory

_GH_API = "https://api.github.com"


class GitHubApi:
    """Authorised GitHub API binding for one connected account."""

    base_url = _GH_API

    def __init__(self, access_token: Optional[str]):
        self.access_token = access_token

    @property
    def is_authorized(self) -> bool:
        return bool(self.access_token)

    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers


class GitHubConnectionFactory(ConnectionFactory):
    """Connection factory for GitHub."""

    @property
    def provider_id(self) -> str:
        return "github"

    @property
    def display_name(self) -> str:
        return "GitHub"

    @property
    def api_type(self) -> type:
        return GitHubApi

    @property
    def scopes(self) -> List[str]:
        return ["repo", "read:user", "user:email"]

    def is_configured(self) -> bool:
        return bool(config.github_client_id and config.github_client_secret)

    def create_api(self, data: ConnectionData) -> GitHubApi:
        return GitHubApi(data.access_token)
