"""
Acting-user lookup used by reaction queries and mutations.
"""
from __future__ import annotations

from typing import Optional, Protocol

from feeds.errors import AuthRequired


class UserSession(Protocol):
    async def current_user_id(self) -> Optional[str]:
        ...

    async def require_user_id(self) -> str:
        ...


class StaticSession:
    """Session pinned to one user id, or anonymous when ``user_id`` is empty."""

    def __init__(self, user_id: Optional[str] = None) -> None:
        self.user_id = user_id or None

    async def current_user_id(self) -> Optional[str]:
        return self.user_id

    async def require_user_id(self) -> str:
        if not self.user_id:
            raise AuthRequired()
        return self.user_id
