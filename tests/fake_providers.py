"""
Provider factories used by the tests (no network, no configuration).
"""

from __future__ import annotations

from typing import Optional

from connectors.base import ConnectionData, ConnectionFactory


class FacebookApi:
    def __init__(self, access_token: Optional[str]):
        self.access_token = access_token


class TwitterApi:
    def __init__(self, access_token: Optional[str], secret: Optional[str]):
        self.access_token = access_token
        self.secret = secret


class FacebookConnectionFactory(ConnectionFactory):
    @property
    def provider_id(self) -> str:
        return "facebook"

    @property
    def display_name(self) -> str:
        return "Facebook"

    @property
    def api_type(self) -> type:
        return FacebookApi

    def create_api(self, data: ConnectionData) -> FacebookApi:
        return FacebookApi(data.access_token)


class TwitterConnectionFactory(ConnectionFactory):
    @property
    def provider_id(self) -> str:
        return "twitter"

    @property
    def display_name(self) -> str:
        return "Twitter"

    @property
    def api_type(self) -> type:
        return TwitterApi

    def create_api(self, data: ConnectionData) -> TwitterApi:
        return TwitterApi(data.access_token, data.secret)
