"""Interfaces of the services the tab manager consumes but does not own.

The auth provider and the router belong to the host application; the tab
manager only calls the methods below.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Navigator(Protocol):
    """Client-side router."""

    def navigate(self, route: str) -> None:
        """Move the visible page to *route*."""
        ...


@runtime_checkable
class AuthProvider(Protocol):
    """Authentication / session provider."""

    def current_user_id(self) -> str | None:
        """Id of the signed-in user, or ``None`` when signed out."""
        ...

    async def sign_out(self) -> None:
        ...
