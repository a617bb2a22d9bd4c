"""HTTP client for the remote todo service."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping, Optional, Sequence, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .errors import (
    GENERIC_ERROR_MESSAGE,
    ApiError,
    AuthError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from .schemas.auth import AuthResult, User
from .schemas.tasks import Task, TaskDraft, TaskUpdate
from .state import SessionState

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class TodoApiClient:
    """Typed wrapper around the todo service's auth and task endpoints.

    The bearer token is read from the injected :class:`SessionState` on every
    request and omitted when no token is present.
    """

    def __init__(
        self,
        settings: Settings,
        state: SessionState,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        self._state = state
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client

        async with self._client_lock:
            if self._client is None:
                timeout = httpx.Timeout(self._settings.request_timeout, connect=10.0)
                self._client = httpx.AsyncClient(
                    timeout=timeout,
                    transport=self._transport,
                )
        return self._client

    @property
    def _base_url(self) -> str:
        return self._settings.base_url

    @property
    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        token = self._state.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def register(self, username: str, email: str, password: str) -> AuthResult:
        payload = await self._request(
            "POST",
            "/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        return self._parse(AuthResult, payload)

    async def login(self, email: str, password: str) -> AuthResult:
        payload = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}
        )
        return self._parse(AuthResult, payload)

    async def whoami(self) -> User:
        payload = await self._request("GET", "/auth/me")
        return self._parse(User, self._field(payload, "user"))

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def list_tasks(self) -> list[Task]:
        payload = await self._request("GET", "/todos")
        items = self._field(payload, "todos")
        if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
            raise ServerError(
                "Malformed response from server",
                status_code=200,
                detail="'todos' is not a list",
            )
        return [self._parse(Task, item) for item in items]

    async def create_task(self, draft: TaskDraft) -> Task:
        payload = await self._request("POST", "/todos", json=draft.to_payload())
        return self._parse(Task, self._field(payload, "todo"))

    async def update_task(self, task_id: str, update: TaskUpdate) -> Task:
        payload = await self._request(
            "PUT", f"/todos/{self._quote(task_id)}", json=update.to_payload()
        )
        return self._parse(Task, self._field(payload, "todo"))

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/todos/{self._quote(task_id)}")

    async def toggle_task(self, task_id: str) -> Task:
        payload = await self._request("PATCH", f"/todos/{self._quote(task_id)}/toggle")
        return self._parse(Task, self._field(payload, "todo"))

    async def aclose(self) -> None:
        async with self._client_lock:
            client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        client = await self._get_http_client()
        logger.debug("%s %s", method, url)
        try:
            response = await client.request(method, url, headers=self._headers, json=json)
        except httpx.HTTPError as exc:
            logger.debug("Transport failure for %s %s: %s", method, url, exc)
            raise NetworkError("Unable to reach the server", detail=str(exc)) from exc

        if response.status_code >= 400:
            raise self._error_for(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ServerError(
                "Malformed response from server",
                status_code=response.status_code,
                detail=str(exc),
            ) from exc

    @staticmethod
    def _quote(task_id: str) -> str:
        return quote(str(task_id), safe="")

    @staticmethod
    def _field(payload: Any, key: str) -> Any:
        if not isinstance(payload, Mapping) or key not in payload:
            raise ServerError(
                "Malformed response from server",
                status_code=200,
                detail=f"Response is missing '{key}'",
            )
        return payload[key]

    @staticmethod
    def _parse(model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise ServerError(
                "Malformed response from server",
                status_code=200,
                detail=str(exc),
            ) from exc

    @classmethod
    def _error_for(cls, response: httpx.Response) -> ApiError:
        status_code = response.status_code
        detail = cls._extract_error_detail(response.content)
        message = cls._extract_message(detail)
        if status_code in (401, 403):
            return AuthError(message, status_code=status_code, detail=detail)
        if status_code == 404:
            return NotFoundError(message, status_code=status_code, detail=detail)
        if status_code >= 500:
            return ServerError(message, status_code=status_code, detail=detail)
        return ValidationError(message, status_code=status_code, detail=detail)

    @staticmethod
    def _extract_error_detail(raw: bytes) -> Any:
        if not raw:
            return None
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="ignore")
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    @staticmethod
    def _extract_message(detail: Any) -> str:
        """Pick the user-facing message out of an error body."""

        if isinstance(detail, Mapping):
            for key in ("message", "error", "detail"):
                value = detail.get(key)
                if isinstance(value, str) and value.strip():
                    return value
            errors = detail.get("errors")
            if isinstance(errors, Sequence) and errors and not isinstance(errors, str):
                first = errors[0]
                if isinstance(first, Mapping):
                    for key in ("msg", "message"):
                        value = first.get(key)
                        if isinstance(value, str) and value.strip():
                            return value
                elif isinstance(first, str) and first.strip():
                    return first
        return GENERIC_ERROR_MESSAGE


__all__ = ["TodoApiClient"]
