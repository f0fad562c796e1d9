"""
OAF Discord Bot - Credential Store
==================================

Holds the session cookie and per-session anti-forgery token ("pwd hash").

DESIGN:
    The pair is replaced wholesale, never field by field, so a reader
    can never observe a cookie from one login with the hash of another.
    Reads are plain attribute access and never wait. Only the login
    sequencer writes, and it does so while holding the login lock.

Bot: OAF
Game: kingdomofloathing.com
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Credentials:
    """Session cookie header value and pwd hash from one successful login."""

    session_cookie: Optional[str] = None
    pwd_hash: Optional[str] = None

    @classmethod
    def empty(cls) -> "Credentials":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.session_cookie


class CredentialStore:
    """Single-slot holder for the current Credentials."""

    def __init__(self) -> None:
        self._current: Credentials = Credentials.empty()

    def get(self) -> Credentials:
        """Snapshot of the current credentials."""
        return self._current

    def set(self, credentials: Credentials) -> None:
        """Replace the credentials. Callers must hold the login lock."""
        self._current = credentials


__all__ = ["Credentials", "CredentialStore"]
