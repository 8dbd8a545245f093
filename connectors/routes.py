"""
Connection management API routes — list providers and connections, disconnect.

Route prefix: /api/v1/connect

The authenticated user's id is expected on ``request.state.user_id``; it is
put there by the authentication layer in front of these routes.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from connectors.base import Connection, ConnectionKey
from connectors.exceptions import NoSuchProvider
from connectors.factory import get_users_connection_repository
from connectors.repository import ConnectionRepository
from connectors.users_repository import UsersConnectionRepository

logger = logging.getLogger(__name__)

router = APIRouter(tags=["connect"])


# ── Dependencies ───────────────────────────────────────────────────────


def current_user_id(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return user_id


def users_connection_repository() -> UsersConnectionRepository:
    return get_users_connection_repository()


def connection_repository(
    user_id: str = Depends(current_user_id),
    users_repository: UsersConnectionRepository = Depends(users_connection_repository),
) -> ConnectionRepository:
    return users_repository.create_connection_repository(user_id)


def _summary(connection: Connection) -> Dict[str, object]:
    """Public view of a connection (no secrets)."""
    return {
        "provider_user_id": connection.key.provider_user_id,
        "display_name": connection.display_name,
        "profile_url": connection.profile_url,
        "image_url": connection.image_url,
        "expire_time": connection.expire_time,
    }


# ── Routes ─────────────────────────────────────────────────────────────


@router.get("/providers")
async def list_providers(
    users_repository: UsersConnectionRepository = Depends(users_connection_repository),
) -> List[Dict[str, str]]:
    """List every registered provider."""
    return users_repository.locator.list_providers()


@router.get("/connections")
async def list_connections(
    repository: ConnectionRepository = Depends(connection_repository),
) -> Dict[str, List[Dict[str, object]]]:
    """The user's connections per provider, primary first."""
    connections = await repository.find_all_connections()
    return {
        provider_id: [_summary(c) for c in provider_connections]
        for provider_id, provider_connections in connections.items()
    }


@router.delete("/connections/{provider_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_connections(
    provider_id: str,
    repository: ConnectionRepository = Depends(connection_repository),
) -> Response:
    """Disconnect every account the user linked from ``provider_id``."""
    _require_provider(repository, provider_id)
    await repository.remove_connections(provider_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/connections/{provider_id}/{provider_user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_connection(
    provider_id: str,
    provider_user_id: str,
    repository: ConnectionRepository = Depends(connection_repository),
) -> Response:
    """Disconnect one provider account."""
    _require_provider(repository, provider_id)
    await repository.remove_connection(
        ConnectionKey(provider_id=provider_id, provider_user_id=provider_user_id)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _require_provider(repository: ConnectionRepository, provider_id: str) -> None:
    try:
        repository.locator.get_connection_factory(provider_id)
    except NoSuchProvider:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Provider '{provider_id}' not found or not configured",
        )
