"""Refresh token repository: single-row-per-principal persistence primitives.

These are the SQL building blocks of
:class:`~tasktracker.infra.sql.sql_refresh_token_store.SQLRefreshTokenStore`.
"""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, select, update
from sqlalchemy.engine import CursorResult

from tasktracker.models.refresh_token import RefreshTokenRecord
from tasktracker.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshTokenRecord]):
    model = RefreshTokenRecord

    def get_by_principal(self, principal: str) -> RefreshTokenRecord | None:
        stmt = (
            select(RefreshTokenRecord)
            .where(RefreshTokenRecord.principal == principal)
            .execution_options(populate_existing=True)
        )
        return cast(RefreshTokenRecord | None, self.session.execute(stmt).scalars().first())

    def replace(
        self,
        *,
        principal: str,
        token_hash: str,
        created_at: datetime,
        expires_at: datetime,
        created_by_ip: str,
    ) -> None:
        """Delete any row of ``principal`` and insert the new one (same transaction)."""
        self.delete_by_principal(principal)
        self.session.add(
            RefreshTokenRecord(
                principal=principal,
                token_hash=token_hash,
                created_at=created_at,
                expires_at=expires_at,
                created_by_ip=created_by_ip,
            )
        )
        self.flush()

    def compare_and_swap(
        self,
        *,
        principal: str,
        expected_hash: str,
        now: datetime,
        new_hash: str,
        created_at: datetime,
        expires_at: datetime,
        created_by_ip: str,
    ) -> bool:
        """Conditionally replace the token of ``principal``.

        A single ``UPDATE ... WHERE principal = :p AND token_hash = :old AND
        expires_at > :now``; the database row lock serialises concurrent
        callers, so at most one of them sees a matched row.

        :returns: ``True`` when exactly one row was updated.
        """
        stmt = (
            update(RefreshTokenRecord)
            .where(
                RefreshTokenRecord.principal == principal,
                RefreshTokenRecord.token_hash == expected_hash,
                RefreshTokenRecord.expires_at > now,
            )
            .values(
                token_hash=new_hash,
                created_at=created_at,
                expires_at=expires_at,
                created_by_ip=created_by_ip,
            )
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return result.rowcount == 1

    def delete_by_principal(self, principal: str) -> int:
        stmt = (
            delete(RefreshTokenRecord)
            .where(RefreshTokenRecord.principal == principal)
            .execution_options(synchronize_session=False)
        )
        return int(cast(CursorResult, self.session.execute(stmt)).rowcount or 0)

    def delete_expired(self, now: datetime) -> int:
        stmt = (
            delete(RefreshTokenRecord)
            .where(RefreshTokenRecord.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return int(cast(CursorResult, self.session.execute(stmt)).rowcount or 0)
