from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from werkzeug.security import check_password_hash, generate_password_hash


class UserDirectory(Protocol):
    """
    Port over the system of record for users.

    The authentication core never sees password hashes: it asks the directory
    to resolve a login name and to verify a secret.
    """

    def resolve_principal(self, login: str) -> str | None:
        """Map a username or email to its principal (``None`` when unknown)."""

    def verify_credentials(self, principal: str, secret: str) -> bool:
        """Return ``True`` when ``secret`` is the principal's password."""

    def get_roles(self, principal: str) -> set[str]:
        """Return the principal's current role names (empty if unknown)."""


@dataclass(slots=True)
class _DirectoryEntry:
    login: str
    password_hash: str
    roles: set[str] = field(default_factory=set)


class InMemoryUserDirectory(UserDirectory):
    """Dictionary-backed directory for unit tests."""

    def __init__(self) -> None:
        self._entries: dict[str, _DirectoryEntry] = {}

    def add(self, principal: str, login: str, password: str, roles: set[str] | None = None) -> None:
        self._entries[principal] = _DirectoryEntry(
            login=login.lower(),
            password_hash=generate_password_hash(password),
            roles=set(roles or set()),
        )

    def set_roles(self, principal: str, roles: set[str]) -> None:
        self._entries[principal].roles = set(roles)

    def resolve_principal(self, login: str) -> str | None:
        wanted = login.strip().lower()
        for principal, entry in self._entries.items():
            if entry.login == wanted:
                return principal
        return None

    def verify_credentials(self, principal: str, secret: str) -> bool:
        entry = self._entries.get(principal)
        return entry is not None and check_password_hash(entry.password_hash, secret)

    def get_roles(self, principal: str) -> set[str]:
        entry = self._entries.get(principal)
        return set(entry.roles) if entry else set()
