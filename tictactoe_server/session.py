"""Player identity carried by a connection.

A Session is an immutable value: logging in or out returns a new one, so
whoever holds the session decides which identity a match reports under.
"""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class SessionUser:
    id: str
    username: str


@dataclass(frozen=True)
class Session:
    user: SessionUser | None = None

    @property
    def user_id(self) -> str | None:
        return self.user.id if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def login(self, user: SessionUser) -> Session:
        return replace(self, user=user)

    def logout(self) -> Session:
        return replace(self, user=None)
