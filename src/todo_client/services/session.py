"""Authenticated-session lifecycle: restore, login, register, logout."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..errors import ApiError, StaleResponseError
from ..gateway import TodoApiClient
from ..schemas.auth import AuthResult
from ..state import Session, SessionState, SessionStatus
from .local_storage import LocalStorage

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"

SessionListener = Callable[[Optional[Session]], None]


class SessionManager:
    """Own the session token, its persistence and its validation."""

    def __init__(
        self,
        gateway: TodoApiClient,
        state: SessionState,
        storage: LocalStorage,
    ):
        self._gateway = gateway
        self._state = state
        self._storage = storage
        self._listeners: list[SessionListener] = []
        self._restore_task: Optional[asyncio.Task[SessionStatus]] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._state.session

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def generation(self) -> int:
        return self._state.generation

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` for session changes; returns an unsubscribe hook."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        session = self._state.session
        for listener in list(self._listeners):
            listener(session)

    async def restore(self) -> SessionStatus:
        """Validate a persisted token, settling the status exactly once.

        Overlapping callers all wait for the same validation.
        """

        if self._restore_task is None:
            self._restore_task = asyncio.ensure_future(self._restore())
        return await asyncio.shield(self._restore_task)

    async def _restore(self) -> SessionStatus:
        token = self._storage.get(TOKEN_KEY)
        if not token:
            self._state.clear()
            return self._state.status

        self._state.begin_validation(token)
        generation = self._state.generation
        try:
            user = await self._gateway.whoami()
        except ApiError as exc:
            logger.warning("Discarding persisted token: %s", exc.message)
            if self._state.generation == generation:
                self._storage.remove(TOKEN_KEY)
                self._state.clear()
                self._notify()
        else:
            if self._state.generation == generation:
                self._state.establish(token, user)
                logger.info("Restored session for %s", user.username)
                self._notify()
        finally:
            # A failure outside the API taxonomy must still settle the status
            if self._state.status is SessionStatus.LOADING:
                self._state.clear()
        return self._state.status

    async def login(self, email: str, password: str) -> Session:
        generation = self._state.generation
        result = await self._gateway.login(email, password)
        return self._accept(result, generation)

    async def register(self, username: str, email: str, password: str) -> Session:
        generation = self._state.generation
        result = await self._gateway.register(username, email, password)
        return self._accept(result, generation)

    def _accept(self, result: AuthResult, generation: int) -> Session:
        if self._state.generation != generation:
            raise StaleResponseError("Session changed while signing in")
        self._storage.set(TOKEN_KEY, result.token)
        session = self._state.establish(result.token, result.user)
        logger.info("Signed in as %s", result.user.username)
        self._notify()
        return session

    def logout(self) -> None:
        self._storage.remove(TOKEN_KEY)
        self._state.clear()
        logger.info("Signed out")
        self._notify()

    def expire(self) -> None:
        """Tear the session down after the service rejected its token."""

        logger.warning("Session token rejected by the server; signing out")
        self._storage.remove(TOKEN_KEY)
        self._state.clear()
        self._notify()


__all__ = ["SessionListener", "SessionManager", "TOKEN_KEY"]
