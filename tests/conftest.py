import asyncio
import itertools
import json
import pathlib
import sys
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from todo_client.app import create_client  # noqa: E402
from todo_client.config import Settings  # noqa: E402

BASE_URL = "http://todo.test/api"
EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def iso(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.000Z")


class FakeTodoService:
    """In-memory stand-in for the remote todo API, served via MockTransport.

    Responses are computed when the request arrives; a gate registered for an
    operation then holds the already-computed response back until released.
    """

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.tokens: dict[str, str] = {}
        self.todos: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.failures: dict[str, tuple[int, Any]] = {}
        self.gates: dict[str, list[asyncio.Event]] = {}
        self._ids = itertools.count(1)
        self._minutes = itertools.count(0)

    # -- setup helpers -------------------------------------------------

    def add_user(self, username: str, email: str, password: str) -> str:
        user_id = f"u{next(self._ids)}"
        self.users[email] = {
            "_id": user_id,
            "username": username,
            "email": email,
            "password": password,
        }
        token = f"token-{user_id}"
        self.tokens[token] = email
        return token

    def add_todo(
        self,
        title: str,
        *,
        priority: str = "medium",
        completed: bool = False,
        description: str = "",
        created_at: Optional[datetime] = None,
        owner: Optional[str] = None,
    ) -> dict[str, Any]:
        moment = created_at or EPOCH + timedelta(minutes=next(self._minutes))
        owner_id = owner or next(iter(self.users.values()))["_id"]
        todo = {
            "_id": f"t{next(self._ids)}",
            "title": title,
            "description": description,
            "priority": priority,
            "completed": completed,
            "user": owner_id,
            "createdAt": iso(moment),
            "updatedAt": iso(moment),
        }
        self.todos.append(todo)
        return todo

    def gate(self, op: str) -> asyncio.Event:
        event = asyncio.Event()
        self.gates.setdefault(op, []).append(event)
        return event

    def fail(self, op: str, status: int, body: Any = None) -> None:
        self.failures[op] = (status, body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def calls(self, op: str) -> int:
        return sum(1 for request in self.requests if self._route(request)[0] == op)

    # -- request handling ---------------------------------------------

    @staticmethod
    def _route(request: httpx.Request) -> tuple[str, Optional[str]]:
        path = request.url.path.removeprefix("/api")
        parts = [part for part in path.split("/") if part]
        method = request.method
        if parts == ["auth", "register"]:
            return "register", None
        if parts == ["auth", "login"]:
            return "login", None
        if parts == ["auth", "me"]:
            return "whoami", None
        if parts == ["todos"]:
            return ("list" if method == "GET" else "create"), None
        if len(parts) == 3 and parts[2] == "toggle":
            return "toggle", parts[1]
        if len(parts) == 2:
            return ("update" if method == "PUT" else "delete"), parts[1]
        return "unknown", None

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        op, todo_id = self._route(request)
        failure = self.failures.pop(op, None)
        if failure is not None:
            status, body = failure
            response = httpx.Response(status, json=body) if body is not None else httpx.Response(status)
        else:
            response = self._dispatch(request, op, todo_id)
        pending = self.gates.get(op)
        if pending:
            await pending.pop(0).wait()
        return response

    def _current_user(self, request: httpx.Request) -> Optional[dict[str, Any]]:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return None
        email = self.tokens.get(header.removeprefix("Bearer "))
        return self.users.get(email) if email else None

    @staticmethod
    def _public(user: dict[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in user.items() if key != "password"}

    def _find(self, todo_id: Optional[str], user: dict[str, Any]) -> Optional[dict[str, Any]]:
        for todo in self.todos:
            if todo["_id"] == todo_id and todo["user"] == user["_id"]:
                return todo
        return None

    def _dispatch(
        self, request: httpx.Request, op: str, todo_id: Optional[str]
    ) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}

        if op == "register":
            if body.get("email") in self.users:
                return httpx.Response(400, json={"message": "User already exists"})
            token = self.add_user(body["username"], body["email"], body["password"])
            user = self.users[body["email"]]
            return httpx.Response(201, json={"user": self._public(user), "token": token})

        if op == "login":
            user = self.users.get(body.get("email"))
            if user is None or user["password"] != body.get("password"):
                return httpx.Response(401, json={"message": "Invalid credentials"})
            token = next(t for t, email in self.tokens.items() if email == user["email"])
            return httpx.Response(200, json={"user": self._public(user), "token": token})

        user = self._current_user(request)
        if user is None:
            return httpx.Response(401, json={"message": "Not authorized, token failed"})

        if op == "whoami":
            return httpx.Response(200, json={"user": self._public(user)})

        if op == "list":
            mine = [todo for todo in self.todos if todo["user"] == user["_id"]]
            mine.sort(key=lambda todo: todo["createdAt"], reverse=True)
            return httpx.Response(200, json={"todos": [dict(todo) for todo in mine]})

        if op == "create":
            if not str(body.get("title", "")).strip():
                return httpx.Response(400, json={"message": "Title is required"})
            todo = self.add_todo(
                body["title"],
                priority=body.get("priority", "medium"),
                description=body.get("description", ""),
                owner=user["_id"],
            )
            return httpx.Response(201, json={"todo": dict(todo)})

        todo = self._find(todo_id, user)
        if todo is None:
            return httpx.Response(404, json={"message": "Todo not found"})

        if op == "update":
            for key in ("title", "description", "priority", "completed"):
                if key in body:
                    todo[key] = body[key]
            return httpx.Response(200, json={"todo": dict(todo)})
        if op == "toggle":
            todo["completed"] = not todo["completed"]
            return httpx.Response(200, json={"todo": dict(todo)})
        if op == "delete":
            self.todos.remove(todo)
            return httpx.Response(200, json={"message": "Todo removed"})

        return httpx.Response(404, json={"message": "Route not found"})


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def service() -> FakeTodoService:
    return FakeTodoService()


@pytest.fixture
def settings(tmp_path: pathlib.Path) -> Settings:
    return Settings(api_base_url=BASE_URL, state_path=tmp_path / "state.json")


@pytest.fixture
async def client(settings: Settings, service: FakeTodoService):
    todo_client = create_client(settings, transport=service.transport())
    yield todo_client
    await todo_client.aclose()
