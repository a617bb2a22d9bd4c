"""Derive the displayed task sequence and counts from the canonical collection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Union

from ..schemas.tasks import Priority, Task


class CompletionFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class SortKey(str, Enum):
    CREATED_AT_ASC = "createdAt_asc"
    CREATED_AT_DESC = "createdAt_desc"
    PRIORITY_ASC = "priority_asc"
    PRIORITY_DESC = "priority_desc"


ALL_PRIORITIES = "all"

PriorityFilter = Union[Priority, str]


@dataclass(frozen=True, slots=True)
class ViewParams:
    """Filter and sort selection; never persisted."""

    completion: CompletionFilter = CompletionFilter.ALL
    priority: PriorityFilter = ALL_PRIORITIES
    sort: SortKey = SortKey.CREATED_AT_DESC

    @classmethod
    def from_strings(
        cls,
        completion: str = "all",
        priority: str = ALL_PRIORITIES,
        sort: str = SortKey.CREATED_AT_DESC.value,
    ) -> "ViewParams":
        """Build parameters from user input, raising ``ValueError`` on unknown values."""

        priority_filter: PriorityFilter = (
            ALL_PRIORITIES if priority == ALL_PRIORITIES else Priority(priority)
        )
        return cls(
            completion=CompletionFilter(completion),
            priority=priority_filter,
            sort=SortKey(sort),
        )


@dataclass(frozen=True, slots=True)
class TaskCounts:
    total: int
    active: int
    completed: int


@dataclass(frozen=True, slots=True)
class Projection:
    tasks: tuple[Task, ...]
    counts: TaskCounts


def count_tasks(tasks: Iterable[Task]) -> TaskCounts:
    total = completed = 0
    for task in tasks:
        total += 1
        if task.completed:
            completed += 1
    return TaskCounts(total=total, active=total - completed, completed=completed)


def _matches(task: Task, params: ViewParams) -> bool:
    if params.completion == CompletionFilter.ACTIVE and task.completed:
        return False
    if params.completion == CompletionFilter.COMPLETED and not task.completed:
        return False
    if params.priority != ALL_PRIORITIES and task.priority != params.priority:
        return False
    return True


def sort_tasks(tasks: Iterable[Task], key: SortKey) -> list[Task]:
    """Stable sort; ties keep collection order in both directions."""

    if key in (SortKey.CREATED_AT_ASC, SortKey.CREATED_AT_DESC):
        return sorted(
            tasks,
            key=lambda task: task.created_at,
            reverse=key == SortKey.CREATED_AT_DESC,
        )
    return sorted(
        tasks,
        key=lambda task: task.priority.rank,
        reverse=key == SortKey.PRIORITY_DESC,
    )


def project(tasks: Iterable[Task], params: ViewParams | None = None) -> Projection:
    """Filter and sort ``tasks`` for display without touching the input."""

    params = params or ViewParams()
    snapshot = tuple(tasks)
    visible = [task for task in snapshot if _matches(task, params)]
    return Projection(
        tasks=tuple(sort_tasks(visible, params.sort)),
        counts=count_tasks(snapshot),
    )


__all__ = [
    "ALL_PRIORITIES",
    "CompletionFilter",
    "Projection",
    "SortKey",
    "TaskCounts",
    "ViewParams",
    "count_tasks",
    "project",
    "sort_tasks",
]
