from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Username or email.
    :param password: Raw password (verified by the User Directory).
    :param client_address: Address of the calling client.
    """

    username: str
    password: str
    client_address: str = "unknown"


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param access_token: The (possibly expired) access token of the session.
    :param refresh_token: Opaque refresh token value.
    :param client_address: Address of the calling client.
    """

    access_token: str
    refresh_token: str
    client_address: str = "unknown"


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param access_token: The access token to revoke (expired tokens accepted).
    """

    access_token: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SessionTokens:
    """
    Credentials handed to the client after login or refresh.

    :param access_token: Signed access token.
    :param access_expires_at: Access token ``exp``.
    :param refresh_token: Opaque refresh token value.
    :param refresh_expires_at: Refresh token expiry.
    """

    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "token_type": "Bearer",
            "access_expires_at": self.access_expires_at.isoformat(),
            "refresh_token": self.refresh_token,
            "refresh_expires_at": self.refresh_expires_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class AuthenticatedIdentity:
    """
    Result of the verification gate, passed explicitly to handlers.

    :param principal: Authenticated principal.
    :param roles: Roles carried by the access token.
    :param token_id: ``jti`` of the presented token.
    :param expires_at: ``exp`` of the presented token.
    """

    principal: str
    roles: frozenset[str]
    token_id: str
    expires_at: datetime

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def to_dict(self) -> dict[str, Any]:
        return {
            "principal": self.principal,
            "roles": sorted(self.roles),
            "token_id": self.token_id,
            "expires_at": self.expires_at.isoformat(),
        }
