"""Authentication payloads for the todo service."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class User(BaseModel):
    """Identity of the authenticated principal."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    username: str
    email: str

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value


class AuthResult(BaseModel):
    """Body returned by the login and register endpoints."""

    model_config = ConfigDict(extra="ignore")

    user: User
    token: str = Field(min_length=1)


__all__ = ["AuthResult", "User"]
