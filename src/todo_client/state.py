"""Process-wide session state shared by the gateway and the session manager."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .schemas.auth import User


class SessionStatus(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True, slots=True)
class Session:
    """Authenticated identity and the credential it was issued."""

    token: str
    user: User


@dataclass(slots=True)
class SessionState:
    """Mutable holder for the current credential.

    ``generation`` increases on every establish/teardown so responses to
    requests issued under an earlier session can be recognised and dropped.
    A token without a user only exists while a restored token is validated.
    """

    token: Optional[str] = None
    user: Optional[User] = None
    status: SessionStatus = SessionStatus.LOADING
    generation: int = 0

    @property
    def session(self) -> Optional[Session]:
        if self.token is None or self.user is None:
            return None
        return Session(token=self.token, user=self.user)

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    def begin_validation(self, token: str) -> None:
        self.token = token
        self.user = None
        self.status = SessionStatus.LOADING

    def establish(self, token: str, user: User) -> Session:
        self.token = token
        self.user = user
        self.status = SessionStatus.AUTHENTICATED
        self.generation += 1
        return Session(token=token, user=user)

    def clear(self) -> None:
        self.token = None
        self.user = None
        self.status = SessionStatus.UNAUTHENTICATED
        self.generation += 1


__all__ = ["Session", "SessionState", "SessionStatus"]
