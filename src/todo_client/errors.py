"""Exception taxonomy shared by the gateway, session manager and task store."""

from __future__ import annotations

from typing import Any, Optional

GENERIC_ERROR_MESSAGE = "Something went wrong"


class TodoClientError(Exception):
    """Base class for every error raised by the client core."""


class ApiError(TodoClientError):
    """Wrap transport or API failures when communicating with the todo service."""

    def __init__(
        self,
        message: str = GENERIC_ERROR_MESSAGE,
        *,
        status_code: Optional[int] = None,
        detail: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail


class AuthError(ApiError):
    """Raised on 401/403. The current session must be torn down."""


class ValidationError(ApiError):
    """Raised for rejected input, either locally or by a 4xx response."""


class NotFoundError(ApiError):
    """Raised when the targeted task no longer exists server-side."""


class ServerError(ApiError):
    """Raised on 5xx responses or a success body that cannot be decoded."""


class NetworkError(ApiError):
    """Raised when the request never produced an HTTP response."""


class TaskBusyError(TodoClientError):
    """Raised when a mutation for the same task id is already in flight."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} has a pending change")
        self.task_id = task_id


class StaleResponseError(TodoClientError):
    """Raised when a response arrives after the session it belongs to ended."""


__all__ = [
    "GENERIC_ERROR_MESSAGE",
    "ApiError",
    "AuthError",
    "NetworkError",
    "NotFoundError",
    "ServerError",
    "StaleResponseError",
    "TaskBusyError",
    "TodoClientError",
    "ValidationError",
]
