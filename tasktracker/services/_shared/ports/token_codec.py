from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Decoded, verified claims of an access token.

    :ivar principal: ``sub`` claim.
    :ivar roles: ``roles`` claim, sorted.
    :ivar token_id: ``jti`` claim; the revocation identity of the token.
    :ivar issued_at: ``iat`` claim (UTC).
    :ivar expires_at: ``exp`` claim (UTC).
    """

    principal: str
    roles: tuple[str, ...]
    token_id: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class IssuedAccessToken:
    """A signed access token together with the claims it carries."""

    token: str
    claims: AccessClaims

    @property
    def expires_at(self) -> datetime:
        return self.claims.expires_at


class TokenCodec(Protocol):
    """Port for signing and verifying short-lived access tokens."""

    def issue(
        self,
        principal: str,
        roles: Iterable[str],
        now: datetime,
        *,
        token_id: str | None = None,
    ) -> IssuedAccessToken:
        """
        Sign a token for ``principal`` valid from ``now`` for the access TTL.

        Identical inputs (including ``token_id``) yield an identical token.
        """

    def verify(self, token: str, now: datetime) -> AccessClaims:
        """
        Verify algorithm, signature, issuer, audience and expiry.

        :raises InvalidTokenError: On any failed check.
        """

    def verify_ignoring_expiry(self, token: str) -> AccessClaims:
        """Same checks as :meth:`verify` except ``exp``."""
