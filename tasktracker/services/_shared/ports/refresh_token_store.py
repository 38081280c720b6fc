from __future__ import annotations

import hashlib
import hmac
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, auto
from typing import Protocol

from tasktracker.core.clock import as_utc

# 64 random bytes -> 512 bits of entropy, url-safe text.
REFRESH_TOKEN_BYTES = 64


class RotationResult(Enum):
    """Outcome of an atomic refresh rotation attempt."""

    OK = auto()
    NOT_FOUND = auto()
    MISMATCH = auto()
    EXPIRED = auto()


@dataclass(frozen=True, slots=True)
class RefreshToken:
    """
    A refresh credential as handed to the client.

    :ivar value: Opaque high-entropy token value (only ever returned here;
        stores keep its digest).
    :ivar principal: Owning principal.
    :ivar created_at: Issuance instant (UTC).
    :ivar expires_at: Absolute expiry (UTC).
    :ivar client_address: Address of the client that obtained it.
    """

    value: str
    principal: str
    created_at: datetime
    expires_at: datetime
    client_address: str

    def is_expired(self, now: datetime) -> bool:
        return as_utc(now) >= as_utc(self.expires_at)


@dataclass(frozen=True, slots=True)
class RefreshTokenView:
    """
    Read-model of the active refresh token for a principal (no secret value).

    :ivar principal: Owning principal.
    :ivar token_digest: SHA-256 hex digest of the token value.
    :ivar created_at: Issuance instant (UTC).
    :ivar expires_at: Absolute expiry (UTC).
    :ivar client_address: Address recorded at issuance/rotation.
    """

    principal: str
    token_digest: str
    created_at: datetime
    expires_at: datetime
    client_address: str


@dataclass(frozen=True, slots=True)
class Rotation:
    """
    Result of :meth:`RefreshTokenStore.rotate`.

    :ivar result: Classification of the attempt.
    :ivar token: The freshly issued token when ``result`` is ``OK``.
    """

    result: RotationResult
    token: RefreshToken | None = None

    @property
    def ok(self) -> bool:
        return self.result is RotationResult.OK


def new_token_value() -> str:
    """Generate a cryptographically random refresh token value."""
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)


def digest_token(value: str) -> str:
    """Return the SHA-256 hex digest under which a token value is stored."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def digests_match(stored_digest: str, presented_value: str) -> bool:
    """Constant-time comparison of a stored digest with a presented value."""
    return hmac.compare_digest(stored_digest, digest_token(presented_value))


class RefreshTokenStore(Protocol):
    """
    Durable store holding **one active refresh token per principal**.

    Issuing replaces any previous token for the principal and ``rotate`` is a
    compare-and-replace: two concurrent rotations presenting the same value
    cannot both succeed.
    """

    ttl: timedelta

    def issue(self, principal: str, client_address: str, now: datetime) -> RefreshToken:
        """Create a token valid until ``now + ttl``, replacing any existing one."""

    def rotate(
        self,
        principal: str,
        presented_value: str,
        client_address: str,
        now: datetime,
    ) -> Rotation:
        """
        Atomically consume ``presented_value`` and replace it with a new token.

        :returns: ``Rotation`` with ``NOT_FOUND`` when the principal has no
            active token, ``MISMATCH`` when the value is stale or wrong,
            ``EXPIRED`` when ``now >= expires_at``, else ``OK`` and the token.
        """

    def revoke(self, principal: str) -> bool:
        """Delete the active token. :returns: True if one existed."""

    def get(self, principal: str) -> RefreshTokenView | None:
        """Fetch the active token snapshot (if present)."""

    def purge_expired(self, now: datetime) -> int:
        """Delete logically dead tokens. :returns: number removed."""


@dataclass(frozen=True, slots=True)
class _Entry:
    digest: str
    created_at: datetime
    expires_at: datetime
    client_address: str


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    Process-local refresh token store.

    .. note::
       A single lock makes ``rotate`` atomic; suitable for tests and
       single-process development servers only.
    """

    def __init__(self, ttl: timedelta) -> None:
        self.ttl = ttl
        self._by_principal: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _mint(self, principal: str, client_address: str, now: datetime) -> tuple[RefreshToken, _Entry]:
        now = as_utc(now)
        token = RefreshToken(
            value=new_token_value(),
            principal=principal,
            created_at=now,
            expires_at=now + self.ttl,
            client_address=client_address,
        )
        entry = _Entry(
            digest=digest_token(token.value),
            created_at=token.created_at,
            expires_at=token.expires_at,
            client_address=client_address,
        )
        return token, entry

    def issue(self, principal: str, client_address: str, now: datetime) -> RefreshToken:
        token, entry = self._mint(principal, client_address, now)
        with self._lock:
            self._by_principal[principal] = entry
        return token

    def rotate(
        self,
        principal: str,
        presented_value: str,
        client_address: str,
        now: datetime,
    ) -> Rotation:
        with self._lock:
            current = self._by_principal.get(principal)
            if current is None:
                return Rotation(RotationResult.NOT_FOUND)
            if not digests_match(current.digest, presented_value):
                return Rotation(RotationResult.MISMATCH)
            if as_utc(now) >= current.expires_at:
                return Rotation(RotationResult.EXPIRED)

            token, entry = self._mint(principal, client_address, now)
            self._by_principal[principal] = entry
            return Rotation(RotationResult.OK, token)

    def revoke(self, principal: str) -> bool:
        with self._lock:
            return self._by_principal.pop(principal, None) is not None

    def get(self, principal: str) -> RefreshTokenView | None:
        with self._lock:
            entry = self._by_principal.get(principal)
        if entry is None:
            return None
        return RefreshTokenView(
            principal=principal,
            token_digest=entry.digest,
            created_at=entry.created_at,
            expires_at=entry.expires_at,
            client_address=entry.client_address,
        )

    def purge_expired(self, now: datetime) -> int:
        now = as_utc(now)
        with self._lock:
            dead = [p for p, e in self._by_principal.items() if now >= e.expires_at]
            for principal in dead:
                del self._by_principal[principal]
            return len(dead)
