from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tasktracker.core.clock import as_utc
from tasktracker.models.refresh_token import RefreshTokenRecord
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
from tasktracker.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


def _view(row: RefreshTokenRecord) -> RefreshTokenView:
    return RefreshTokenView(
        principal=row.principal,
        token_digest=row.token_hash,
        created_at=as_utc(row.created_at),
        expires_at=as_utc(row.expires_at),
        client_address=row.created_by_ip,
    )


@dataclass(slots=True)
class SQLRefreshTokenStore(RefreshTokenStore):
    """
    Refresh token store on the application database.

    Each call runs in its own :class:`SQLAlchemyUnitOfWork` and commits before
    returning, so a token handed to a client is always durable. Rotation is a
    single conditional ``UPDATE``; when it matches no row the current state is
    re-read to classify the failure.

    :param ttl: Refresh token lifetime.
    :param uow_factory: Unit of work constructor (injectable for tests).
    """

    ttl: timedelta
    uow_factory: Callable[[], SQLAlchemyUnitOfWork] = field(default=SQLAlchemyUnitOfWork)

    # -------------------- API ------------------------

    def issue(self, principal: str, client_address: str, now: datetime) -> RefreshToken:
        token = self._mint(principal, client_address, now)
        try:
            self._replace(token)
        except IntegrityError:
            # A concurrent login for the same principal inserted first; last writer wins.
            log.info("refresh_store.issue_conflict_retry", extra={"principal": principal})
            try:
                self._replace(token)
            except IntegrityError as exc:
                raise StoreUnavailableError() from exc
        return token

    def rotate(
        self,
        principal: str,
        presented_value: str,
        client_address: str,
        now: datetime,
    ) -> Rotation:
        now = as_utc(now)
        new = self._mint(principal, client_address, now)
        try:
            with self.uow_factory() as uow:
                swapped = uow.refresh_tokens.compare_and_swap(
                    principal=principal,
                    expected_hash=digest_token(presented_value),
                    now=now,
                    new_hash=digest_token(new.value),
                    created_at=new.created_at,
                    expires_at=new.expires_at,
                    created_by_ip=client_address,
                )
                if swapped:
                    return Rotation(RotationResult.OK, new)
                current = uow.refresh_tokens.get_by_principal(principal)
                return Rotation(self._classify(current, presented_value, now))
        except SQLAlchemyError as exc:
            raise StoreUnavailableError() from exc

    def revoke(self, principal: str) -> bool:
        try:
            with self.uow_factory() as uow:
                return uow.refresh_tokens.delete_by_principal(principal) > 0
        except SQLAlchemyError as exc:
            raise StoreUnavailableError() from exc

    def get(self, principal: str) -> RefreshTokenView | None:
        try:
            with self.uow_factory() as uow:
                row = uow.refresh_tokens.get_by_principal(principal)
                return _view(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise StoreUnavailableError() from exc

    def purge_expired(self, now: datetime) -> int:
        try:
            with self.uow_factory() as uow:
                return uow.refresh_tokens.delete_expired(as_utc(now))
        except SQLAlchemyError as exc:
            raise StoreUnavailableError() from exc

    # -------------------- helpers --------------------

    def _mint(self, principal: str, client_address: str, now: datetime) -> RefreshToken:
        now = as_utc(now)
        return RefreshToken(
            value=new_token_value(),
            principal=principal,
            created_at=now,
            expires_at=now + self.ttl,
            client_address=client_address,
        )

    def _replace(self, token: RefreshToken) -> None:
        try:
            with self.uow_factory() as uow:
                uow.refresh_tokens.replace(
                    principal=token.principal,
                    token_hash=digest_token(token.value),
                    created_at=token.created_at,
                    expires_at=token.expires_at,
                    created_by_ip=token.client_address,
                )
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise StoreUnavailableError() from exc

    @staticmethod
    def _classify(
        current: RefreshTokenRecord | None, presented_value: str, now: datetime
    ) -> RotationResult:
        if current is None:
            return RotationResult.NOT_FOUND
        if not digests_match(current.token_hash, presented_value):
            return RotationResult.MISMATCH
        if now >= as_utc(current.expires_at):
            return RotationResult.EXPIRED
        # Matched and live but the UPDATE missed it: a concurrent rotation won.
        return RotationResult.MISMATCH
