"""
Tests for the /api/v1/connect routes, served in-process through httpx.
"""

import httpx
import pytest
from fastapi import FastAPI

from connectors.routes import current_user_id, router, users_connection_repository


@pytest.fixture
def app(users_repository):
    app = FastAPI()
    app.include_router(router, prefix="/api/v1/connect")
    app.dependency_overrides[users_connection_repository] = lambda: users_repository
    app.dependency_overrides[current_user_id] = lambda: "alice"
    return app


def _client(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestConnectRoutes:
    @pytest.mark.asyncio
    async def test_list_providers(self, app):
        async with _client(app) as client:
            response = await client.get("/api/v1/connect/providers")

        assert response.status_code == 200
        assert [p["provider"] for p in response.json()] == ["facebook", "twitter"]

    @pytest.mark.asyncio
    async def test_list_connections_hides_secrets(self, app, alice, make_connection):
        await alice.add_connection(make_connection("facebook", "fb1", access_token="very-secret"))

        async with _client(app) as client:
            response = await client.get("/api/v1/connect/connections")

        assert response.status_code == 200
        body = response.json()
        assert body["twitter"] == []
        assert [c["provider_user_id"] for c in body["facebook"]] == ["fb1"]
        assert "very-secret" not in response.text

    @pytest.mark.asyncio
    async def test_requires_authenticated_user(self, app):
        del app.dependency_overrides[current_user_id]

        async with _client(app) as client:
            response = await client.get("/api/v1/connect/connections")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_remove_one_connection(self, app, alice, make_connection):
        await alice.add_connection(make_connection("facebook", "fb1"))
        await alice.add_connection(make_connection("facebook", "fb2"))

        async with _client(app) as client:
            response = await client.delete("/api/v1/connect/connections/facebook/fb1")

        assert response.status_code == 204
        assert [c.key.provider_user_id for c in await alice.find_connections("facebook")] == ["fb2"]

    @pytest.mark.asyncio
    async def test_remove_all_connections_for_provider(self, app, alice, make_connection):
        await alice.add_connection(make_connection("facebook", "fb1"))
        await alice.add_connection(make_connection("twitter", "tw1"))

        async with _client(app) as client:
            response = await client.delete("/api/v1/connect/connections/facebook")

        assert response.status_code == 204
        assert await alice.find_connections("facebook") == []
        assert len(await alice.find_connections("twitter")) == 1

    @pytest.mark.asyncio
    async def test_remove_absent_connection_is_no_content(self, app):
        async with _client(app) as client:
            response = await client.delete("/api/v1/connect/connections/facebook/ghost")

        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_unknown_provider(self, app):
        async with _client(app) as client:
            response = await client.delete("/api/v1/connect/connections/myspace")

        assert response.status_code == 404
