"""Task domain package: canonical collection and view projection."""

from .projector import (
    CompletionFilter,
    Projection,
    SortKey,
    TaskCounts,
    ViewParams,
    project,
)
from .store import TaskStore

__all__ = [
    "CompletionFilter",
    "Projection",
    "SortKey",
    "TaskCounts",
    "TaskStore",
    "ViewParams",
    "project",
]
