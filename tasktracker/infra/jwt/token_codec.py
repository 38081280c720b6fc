from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import jwt

from tasktracker.core.clock import as_utc
from tasktracker.core.config import AuthSettings, ConfigurationError
from tasktracker.services._shared.errors import InvalidTokenError
from tasktracker.services._shared.ports import AccessClaims, IssuedAccessToken, TokenCodec

ALGORITHM = "HS256"
TOKEN_TYPE = "access"
REQUIRED_CLAIMS = ["sub", "iat", "exp", "jti", "iss", "aud"]

# PyJWT exception -> internal rejection reason (logged, never returned)
_REASONS: tuple[tuple[type[jwt.PyJWTError], str], ...] = (
    (jwt.InvalidSignatureError, "signature"),
    (jwt.InvalidAudienceError, "audience"),
    (jwt.InvalidIssuerError, "issuer"),
    (jwt.MissingRequiredClaimError, "missing_claim"),
    (jwt.DecodeError, "malformed"),
)


def _reason_for(exc: jwt.PyJWTError) -> str:
    for exc_type, reason in _REASONS:
        if isinstance(exc, exc_type):
            return reason
    return "invalid"


@dataclass(slots=True)
class JWTTokenCodec(TokenCodec):
    """
    HS256 access token codec built on PyJWT.

    Clock-free: the caller passes ``now``, and ``exp`` is checked here rather
    than by PyJWT (which would read the wall clock).

    :param settings: Signing key, issuer, audience and access TTL.
    :raises ConfigurationError: When the signing key is empty.
    """

    settings: AuthSettings
    _ttl_seconds: int = field(init=False)

    def __post_init__(self) -> None:
        if not self.settings.secret_key:
            raise ConfigurationError("JWT_SECRET_KEY is required to sign access tokens.")
        self._ttl_seconds = int(self.settings.access_ttl.total_seconds())

    # -------------------- issue ------------------------

    def issue(
        self,
        principal: str,
        roles: Iterable[str],
        now: datetime,
        *,
        token_id: str | None = None,
    ) -> IssuedAccessToken:
        iat = int(as_utc(now).timestamp())
        exp = iat + self._ttl_seconds
        sorted_roles = sorted(set(roles))
        jti = token_id or self._derived_token_id(principal, sorted_roles, iat)

        payload: dict[str, Any] = {
            "sub": principal,
            "roles": sorted_roles,
            "iat": iat,
            "exp": exp,
            "jti": jti,
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
            "type": TOKEN_TYPE,
        }
        token = jwt.encode(payload, self.settings.secret_key, algorithm=ALGORITHM)
        claims = AccessClaims(
            principal=principal,
            roles=tuple(sorted_roles),
            token_id=jti,
            issued_at=datetime.fromtimestamp(iat, tz=UTC),
            expires_at=datetime.fromtimestamp(exp, tz=UTC),
        )
        return IssuedAccessToken(token=token, claims=claims)

    @staticmethod
    def _derived_token_id(principal: str, roles: list[str], iat: int) -> str:
        material = f"{principal}|{','.join(roles)}|{iat}".encode()
        return hashlib.sha256(material).hexdigest()[:32]

    # -------------------- verify -----------------------

    def verify(self, token: str, now: datetime) -> AccessClaims:
        claims = self.verify_ignoring_expiry(token)
        if as_utc(now) >= claims.expires_at:
            raise InvalidTokenError("expired")
        return claims

    def verify_ignoring_expiry(self, token: str) -> AccessClaims:
        if not isinstance(token, str) or not token:
            raise InvalidTokenError("malformed")

        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise InvalidTokenError("malformed") from exc
        # Checked before decode so "none" and asymmetric algs never reach a verifier.
        if header.get("alg") != ALGORITHM:
            raise InvalidTokenError("algorithm")

        try:
            payload = jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[ALGORITHM],
                audience=self.settings.audience,
                issuer=self.settings.issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError(_reason_for(exc)) from exc

        return self._to_claims(payload)

    @staticmethod
    def _to_claims(payload: dict[str, Any]) -> AccessClaims:
        if payload.get("type") != TOKEN_TYPE:
            raise InvalidTokenError("token_type")

        sub, jti = payload.get("sub"), payload.get("jti")
        roles = payload.get("roles", [])
        iat, exp = payload.get("iat"), payload.get("exp")
        if not isinstance(sub, str) or not sub or not isinstance(jti, str) or not jti:
            raise InvalidTokenError("claims")
        if not isinstance(roles, list) or not all(isinstance(r, str) for r in roles):
            raise InvalidTokenError("claims")
        if not isinstance(iat, int) or not isinstance(exp, int) or exp <= iat:
            raise InvalidTokenError("claims")

        return AccessClaims(
            principal=sub,
            roles=tuple(sorted(roles)),
            token_id=jti,
            issued_at=datetime.fromtimestamp(iat, tz=UTC),
            expires_at=datetime.fromtimestamp(exp, tz=UTC),
        )
