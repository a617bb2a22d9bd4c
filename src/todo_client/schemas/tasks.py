"""Task payloads exchanged with the todo service."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Ordinal used for sorting: low < medium < high."""

        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[Priority, int] = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Task(BaseModel):
    """A single to-do item as returned by the service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str = Field(
        validation_alias=AliasChoices("_id", "id"), serialization_alias="_id"
    )
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    completed: bool = False
    created_at: datetime = Field(
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _none_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Mixed naive/aware timestamps would make chronological sorting fail
        return _as_utc(value)


class TaskDraft(BaseModel):
    """Fields a user supplies when creating a task."""

    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class TaskUpdate(BaseModel):
    """Partial update; only explicitly set fields are sent."""

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    completed: Optional[bool] = None

    @field_validator("description", "priority", "completed", mode="before")
    @classmethod
    def _reject_null(cls, value: Any) -> Any:
        # The service has no way to clear these; leave the field unset instead
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set


__all__ = ["Priority", "Task", "TaskDraft", "TaskUpdate"]
