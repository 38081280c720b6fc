"""
tasktracker.services._shared.ports
==================================

Collection of *ports* (hexagonal interfaces) that define the contracts of the
authentication core with its infrastructure.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec`: signing and verification of access tokens.

- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore`, :class:`~.RotationResult` and
    :class:`~.Rotation`: single-active refresh token persistence.

- :mod:`user_directory`:
    Defines :class:`~.UserDirectory`: credential verification and roles.

Concrete adapters (SQL, Redis, PyJWT) live under ``tasktracker.infra`` and
``tasktracker.services.auth.directory``.
"""

from __future__ import annotations

from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshToken,
    RefreshTokenStore,
    RefreshTokenView,
    Rotation,
    RotationResult,
    digest_token,
    digests_match,
    new_token_value,
)
from .token_codec import AccessClaims, IssuedAccessToken, TokenCodec
from .user_directory import InMemoryUserDirectory, UserDirectory

__all__ = [
    "AccessClaims",
    "IssuedAccessToken",
    "TokenCodec",
    "RefreshToken",
    "RefreshTokenView",
    "RefreshTokenStore",
    "Rotation",
    "RotationResult",
    "InMemoryRefreshTokenStore",
    "digest_token",
    "digests_match",
    "new_token_value",
    "UserDirectory",
    "InMemoryUserDirectory",
]
