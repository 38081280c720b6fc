from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import redis

from tasktracker.core.clock import as_utc
from tasktracker.services._shared.errors import StoreUnavailableError
from tasktracker.services._shared.ports import (
    RefreshToken,
    RefreshTokenStore,
    RefreshTokenView,
    Rotation,
    RotationResult,
    digest_token,
    digests_match,
    new_token_value,
)

log = logging.getLogger(__name__)


def _s(raw: Any, default: str = "") -> str:
    if raw is None:
        return default
    return raw.decode() if isinstance(raw, bytes | bytearray) else str(raw)


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store with atomic rotation.

    One hash per principal (``{prefix}:p:{principal}``) holding the token
    digest, timestamps and client address. The key TTL follows the token
    expiry so dead tokens disappear without a sweep.

    :param r: A Redis client (already connected).
    :param ttl: Refresh token lifetime.
    :param prefix: Key namespace.
    """

    r: redis.Redis
    ttl: timedelta
    prefix: str = "rt"

    # -------------------- helpers --------------------

    def _k(self, principal: str) -> str:
        return f"{self.prefix}:p:{principal}"

    def _mint(self, principal: str, client_address: str, now: datetime) -> RefreshToken:
        now = as_utc(now)
        return RefreshToken(
            value=new_token_value(),
            principal=principal,
            created_at=now,
            expires_at=now + self.ttl,
            client_address=client_address,
        )

    @staticmethod
    def _mapping(token: RefreshToken) -> dict[str, str]:
        return {
            "digest": digest_token(token.value),
            "created_at": token.created_at.isoformat(),
            "expires_at": token.expires_at.isoformat(),
            "client_address": token.client_address,
        }

    @staticmethod
    def _key_ttl(token: RefreshToken, now: datetime) -> int:
        return max(1, math.ceil((token.expires_at - as_utc(now)).total_seconds()))

    # -------------------- API ------------------------

    def issue(self, principal: str, client_address: str, now: datetime) -> RefreshToken:
        token = self._mint(principal, client_address, now)
        key = self._k(principal)
        try:
            with self.r.pipeline(transaction=True) as p:
                p.delete(key)
                p.hset(key, mapping=self._mapping(token))
                p.expire(key, self._key_ttl(token, now))
                p.execute()
        except redis.RedisError as exc:
            raise StoreUnavailableError() from exc
        return token

    def rotate(
        self,
        principal: str,
        presented_value: str,
        client_address: str,
        now: datetime,
    ) -> Rotation:
        """
        Atomically consume ``presented_value`` and store a new token.

        Uses WATCH/MULTI/EXEC (optimistic locking): if another client rotates
        between the read and the EXEC, the transaction aborts and the loop
        re-reads, now observing the winner's digest (``MISMATCH``).
        """
        now = as_utc(now)
        key = self._k(principal)
        new = self._mint(principal, client_address, now)

        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    h = p.hgetall(key)
                    if not h:
                        p.unwatch()
                        return Rotation(RotationResult.NOT_FOUND)

                    stored = {_s(k): _s(v) for k, v in h.items()}
                    if not digests_match(stored.get("digest", ""), presented_value):
                        p.unwatch()
                        return Rotation(RotationResult.MISMATCH)
                    if now >= datetime.fromisoformat(stored["expires_at"]):
                        p.unwatch()
                        return Rotation(RotationResult.EXPIRED)

                    p.multi()
                    p.hset(key, mapping=self._mapping(new))
                    p.expire(key, self._key_ttl(new, now))
                    p.execute()
                return Rotation(RotationResult.OK, new)
            except redis.WatchError:
                log.debug("refresh_store.rotate_retry", extra={"principal": principal})
                continue
            except redis.RedisError as exc:
                raise StoreUnavailableError() from exc

    def revoke(self, principal: str) -> bool:
        try:
            return bool(self.r.delete(self._k(principal)))
        except redis.RedisError as exc:
            raise StoreUnavailableError() from exc

    def get(self, principal: str) -> RefreshTokenView | None:
        try:
            h = self.r.hgetall(self._k(principal))
        except redis.RedisError as exc:
            raise StoreUnavailableError() from exc
        if not h:
            return None
        stored = {_s(k): _s(v) for k, v in h.items()}
        return RefreshTokenView(
            principal=principal,
            token_digest=stored.get("digest", ""),
            created_at=datetime.fromisoformat(stored["created_at"]),
            expires_at=datetime.fromisoformat(stored["expires_at"]),
            client_address=stored.get("client_address", "unknown"),
        )

    def purge_expired(self, now: datetime) -> int:
        """Delete logically expired hashes (keys normally expire on their own)."""
        now = as_utc(now)
        removed = 0
        try:
            for key in self.r.scan_iter(match=f"{self.prefix}:p:*", count=500):
                expires_at = self.r.hget(key, "expires_at")
                if expires_at is not None and now >= datetime.fromisoformat(_s(expires_at)):
                    removed += int(self.r.delete(key))
        except redis.RedisError as exc:
            raise StoreUnavailableError() from exc
        return removed
