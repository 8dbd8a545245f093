"""
Tests for Connection and ConnectionFactory.
"""

import pytest

from connectors.base import ConnectionData, ConnectionKey, ConnectionRecordKey
from connectors.google import GoogleApi, GoogleConnectionFactory
from fake_providers import FacebookApi


class TestConnection:
    def test_exposes_data(self, make_connection):
        connection = make_connection("facebook", "fb1", image_url="https://img/1.png")

        assert connection.key == ConnectionKey(provider_id="facebook", provider_user_id="fb1")
        assert str(connection.key) == "facebook:fb1"
        assert connection.api_type is FacebookApi
        assert connection.image_url == "https://img/1.png"
        assert connection.create_data().access_token == "fb1-access"

    def test_update_rebuilds_api(self, make_connection):
        connection = make_connection("facebook", "fb1")
        assert connection.api.access_token == "fb1-access"

        connection.update(access_token="rotated")

        assert connection.api.access_token == "rotated"

    def test_expiry(self, make_connection):
        connection = make_connection("facebook", "fb1", expire_time=1000)

        assert not connection.has_expired(999)
        assert connection.has_expired(1000)
        assert not make_connection("facebook", "fb2").has_expired(10**13)

    def test_equality(self, make_connection):
        assert make_connection("facebook", "fb1") == make_connection("facebook", "fb1")
        assert make_connection("facebook", "fb1") != make_connection("facebook", "fb1", access_token="x")
        assert len({make_connection("facebook", "fb1"), make_connection("facebook", "fb1")}) == 1


class TestConnectionFactory:
    def test_rejects_foreign_data(self):
        with pytest.raises(ValueError):
            GoogleConnectionFactory().create_connection(
                ConnectionData(provider_id="github", provider_user_id="1")
            )

    def test_google_binding(self):
        connection = GoogleConnectionFactory().create_connection(
            ConnectionData(provider_id="google", provider_user_id="1", access_token="at", refresh_token="rt")
        )

        assert isinstance(connection.api, GoogleApi)
        assert connection.api.headers() == {"Authorization": "Bearer at"}
        assert connection.api.refresh_token == "rt"


class TestConnectionRecordKey:
    def test_for_connection(self):
        key = ConnectionKey(provider_id="facebook", provider_user_id="fb1")

        record_key = ConnectionRecordKey.for_connection("alice", key)

        assert record_key.connection_key == key
        assert record_key.as_columns() == {
            "user_id": "alice",
            "provider_id": "facebook",
            "provider_user_id": "fb1",
        }
