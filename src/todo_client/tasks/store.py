"""Canonical in-memory task collection kept in sync with the todo service."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from ..errors import (
    ApiError,
    AuthError,
    NotFoundError,
    StaleResponseError,
    TaskBusyError,
    ValidationError,
)
from ..gateway import TodoApiClient
from ..schemas.tasks import Task, TaskDraft, TaskUpdate
from ..services.session import SessionManager
from ..state import Session
from .projector import Projection, ViewParams, project

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Change:
    """A confirmed mutation recorded while a reload is in flight."""

    task: Optional[Task]
    created: bool = False


class TaskStore:
    """Own the task collection and apply confirmed server state to it.

    Tasks are held in an insertion-ordered mapping keyed by id. Every mutation
    waits for the service to confirm it before touching the mapping, and at
    most one mutating call per task id may be in flight.
    """

    def __init__(self, gateway: TodoApiClient, session: SessionManager):
        self._gateway = gateway
        self._session = session
        self._tasks: dict[str, Task] = {}
        self._in_flight: set[str] = set()
        self._journals: dict[int, dict[str, _Change]] = {}
        self._load_seq = 0
        self._loaded = False
        session.subscribe(self._on_session_change)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks.values())

    @property
    def loaded(self) -> bool:
        return self._loaded

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def is_busy(self, task_id: str) -> bool:
        return task_id in self._in_flight

    def view(self, params: ViewParams | None = None) -> Projection:
        return project(self._tasks.values(), params)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def reset(self) -> None:
        self._tasks = {}
        self._journals.clear()
        self._loaded = False

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def load(self) -> tuple[Task, ...]:
        """Replace the collection with the server's; the last response wins."""

        generation = self._session.generation
        self._load_seq += 1
        seq = self._load_seq
        self._journals[seq] = {}
        try:
            fetched = await self._gateway.list_tasks()
        except ApiError as exc:
            self._handle_failure("load", None, exc, generation)
            raise
        finally:
            journal = self._journals.pop(seq, {})
        self._ensure_current(generation)

        tasks: dict[str, Task] = {}
        for task in fetched:
            if task.id in tasks:
                logger.warning("Ignoring duplicate todo id %s in list response", task.id)
                continue
            tasks[task.id] = task

        # Re-apply mutations confirmed after this request was issued
        for task_id, change in journal.items():
            if change.task is None:
                tasks.pop(task_id, None)
            elif task_id in tasks:
                tasks[task_id] = change.task
            elif change.created:
                tasks = {task_id: change.task, **tasks}

        self._tasks = tasks
        self._loaded = True
        logger.debug("Loaded %d todos", len(tasks))
        return self.tasks

    async def create(self, draft: TaskDraft) -> Task:
        if not draft.title.strip():
            raise ValidationError("Title is required")

        generation = self._session.generation
        try:
            task = await self._gateway.create_task(draft)
        except ApiError as exc:
            self._handle_failure("create", None, exc, generation)
            raise
        self._ensure_current(generation)

        remaining = {key: value for key, value in self._tasks.items() if key != task.id}
        self._tasks = {task.id: task, **remaining}
        self._record(task.id, _Change(task, created=True))
        return task

    async def toggle(self, task_id: str) -> Task:
        with self._claim(task_id):
            generation = self._session.generation
            try:
                task = await self._gateway.toggle_task(task_id)
            except ApiError as exc:
                self._handle_failure("toggle", task_id, exc, generation)
                raise
            self._ensure_current(generation)
            self._replace(task)
            return task

    async def update(self, task_id: str, update: TaskUpdate) -> Task:
        if update.is_empty():
            raise ValidationError("Nothing to update")
        if "title" in update.model_fields_set and not (update.title or "").strip():
            raise ValidationError("Title is required")

        with self._claim(task_id):
            generation = self._session.generation
            try:
                task = await self._gateway.update_task(task_id, update)
            except ApiError as exc:
                self._handle_failure("update", task_id, exc, generation)
                raise
            self._ensure_current(generation)
            self._replace(task)
            return task

    async def delete(self, task_id: str) -> None:
        with self._claim(task_id):
            generation = self._session.generation
            try:
                await self._gateway.delete_task(task_id)
            except ApiError as exc:
                self._handle_failure("delete", task_id, exc, generation)
                raise
            self._ensure_current(generation)
            self._remove(task_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _claim(self, task_id: str) -> Iterator[None]:
        if task_id in self._in_flight:
            raise TaskBusyError(task_id)
        self._in_flight.add(task_id)
        try:
            yield
        finally:
            self._in_flight.discard(task_id)

    def _ensure_current(self, generation: int) -> None:
        if self._session.generation != generation:
            logger.info("Discarding response issued under a previous session")
            raise StaleResponseError("Session changed before the response arrived")

    def _record(self, task_id: str, change: _Change) -> None:
        for journal in self._journals.values():
            previous = journal.get(task_id)
            if previous is not None and previous.created and change.task is not None:
                # A later edit of a task created mid-load still has to be inserted
                journal[task_id] = _Change(change.task, created=True)
            else:
                journal[task_id] = change

    def _replace(self, task: Task) -> None:
        if task.id in self._tasks:
            self._tasks[task.id] = task
        else:
            logger.debug("Todo %s is not in the collection; leaving it untouched", task.id)
        self._record(task.id, _Change(task))

    def _remove(self, task_id: str) -> None:
        self._tasks.pop(task_id, None)
        self._record(task_id, _Change(None))

    def _handle_failure(
        self,
        action: str,
        task_id: Optional[str],
        exc: ApiError,
        generation: int,
    ) -> None:
        if task_id is None:
            logger.warning("Failed to %s todos: %s", action, exc.message)
        else:
            logger.warning("Failed to %s todo %s: %s", action, task_id, exc.message)
        if self._session.generation != generation:
            return
        if isinstance(exc, AuthError):
            self._session.expire()
        elif isinstance(exc, NotFoundError) and task_id is not None:
            self._remove(task_id)

    def _on_session_change(self, session: Optional[Session]) -> None:
        # A new or ended session never sees the previous user's tasks
        self.reset()


__all__ = ["TaskStore"]
