"""Authentication collaborators: who owns the collections right now."""

from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger("focusdesk.auth")


class AuthProvider:
    """Resolves the current owner id, or None when nobody is signed in."""

    def current_owner_id(self) -> Optional[str]:
        raise NotImplementedError


class StaticAuth(AuthProvider):
    """Fixed owner. Used by the CLI and tests."""

    def __init__(self, owner_id: Optional[str]):
        self._owner_id = owner_id

    def current_owner_id(self) -> Optional[str]:
        return self._owner_id


class SessionAuth(AuthProvider):
    """Owner set by an explicit sign-in, cleared by sign-out."""

    def __init__(self, owner_id: Optional[str] = None):
        self._owner_id = owner_id

    def sign_in(self, owner_id: str) -> None:
        owner_id = owner_id.strip()
        if not owner_id:
            raise ValueError("owner id must not be empty")
        self._owner_id = owner_id
        logger.info(f"Signed in as {owner_id}")

    def sign_out(self) -> None:
        if self._owner_id is not None:
            logger.info(f"Signed out {self._owner_id}")
        self._owner_id = None

    def current_owner_id(self) -> Optional[str]:
        return self._owner_id
