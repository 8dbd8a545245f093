"""
Connection interceptors — hooks around connection create / update / remove.

An interceptor targets one provider capability through its ``api_type``
class attribute and only sees connections carrying exactly that tag (no
subclass matching). Hooks are awaited one after another in registration
order. A failing ``before_*`` hook aborts the operation before anything is
written; ``after_*`` hooks run once the change is committed, and their
errors propagate to the caller with the change already in place.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from connectors.base import Connection

logger = logging.getLogger(__name__)


class ConnectionInterceptor:
    """Base interceptor; override the hooks you need."""

    api_type: type = object

    async def before_create(self, user_id: str, connection: Connection) -> None:
        pass

    async def after_create(self, user_id: str, connection: Connection) -> None:
        pass

    async def before_update(self, user_id: str, connection: Connection) -> None:
        pass

    async def after_update(self, user_id: str, connection: Connection) -> None:
        pass

    async def before_remove(self, user_id: str, connections: Sequence[Connection]) -> None:
        pass

    async def after_remove(self, user_id: str, connections: Sequence[Connection]) -> None:
        pass


class InterceptorRegistry:
    """Maps an api type to the interceptors registered for it, in order."""

    def __init__(self, interceptors: Iterable[ConnectionInterceptor] = ()):
        self._interceptors: Dict[type, List[ConnectionInterceptor]] = {}
        for interceptor in interceptors:
            self.add(interceptor)

    def add(self, interceptor: ConnectionInterceptor) -> None:
        self._interceptors.setdefault(interceptor.api_type, []).append(interceptor)

    def for_api_type(self, api_type: type) -> List[ConnectionInterceptor]:
        return list(self._interceptors.get(api_type, ()))

    def for_connection(self, connection: Connection) -> List[ConnectionInterceptor]:
        return self.for_api_type(connection.api_type)

    def __len__(self) -> int:
        return sum(len(v) for v in self._interceptors.values())

    # ── dispatch ────────────────────────────────────────────────────────

    async def before_create(self, user_id: str, connection: Connection) -> None:
        await self._dispatch("before_create", user_id, connection, connection)

    async def after_create(self, user_id: str, connection: Connection) -> None:
        await self._dispatch("after_create", user_id, connection, connection)

    async def before_update(self, user_id: str, connection: Connection) -> None:
        await self._dispatch("before_update", user_id, connection, connection)

    async def after_update(self, user_id: str, connection: Connection) -> None:
        await self._dispatch("after_update", user_id, connection, connection)

    async def before_remove(self, user_id: str, connections: Sequence[Connection]) -> None:
        if connections:
            await self._dispatch("before_remove", user_id, connections[0], connections)

    async def after_remove(self, user_id: str, connections: Sequence[Connection]) -> None:
        if connections:
            await self._dispatch("after_remove", user_id, connections[0], connections)

    async def _dispatch(self, hook: str, user_id: str, target: Connection, argument) -> None:
        for interceptor in self.for_connection(target):
            try:
                await getattr(interceptor, hook)(user_id, argument)
            except Exception:
                logger.error(
                    "%s.%s failed for user %s, connection %s",
                    type(interceptor).__name__,
                    hook,
                    user_id,
                    target.key,
                )
                raise
