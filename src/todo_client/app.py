"""Factory wiring settings, storage, gateway, session and store together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from .config import Settings, get_settings
from .gateway import TodoApiClient
from .services.local_storage import LocalStorage
from .services.preferences import ThemePreference
from .services.session import SessionManager
from .state import SessionState
from .tasks.store import TaskStore


@dataclass
class TodoClient:
    settings: Settings
    state: SessionState
    gateway: TodoApiClient
    session: SessionManager
    store: TaskStore
    theme: ThemePreference

    async def aclose(self) -> None:
        await self.gateway.aclose()


def create_client(
    settings: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> TodoClient:
    settings = settings or get_settings()
    storage = LocalStorage(settings.state_path)
    state = SessionState()
    gateway = TodoApiClient(settings, state, transport=transport)
    session = SessionManager(gateway, state, storage)
    store = TaskStore(gateway, session)
    return TodoClient(
        settings=settings,
        state=state,
        gateway=gateway,
        session=session,
        store=store,
        theme=ThemePreference(storage),
    )


__all__ = ["TodoClient", "create_client"]
