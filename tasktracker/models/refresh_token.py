"""Durable refresh token rows (one active row per principal)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tasktracker.core.extensions import db

from .base import PKMixin, ReprMixin


class RefreshTokenRecord(PKMixin, ReprMixin, db.Model):
    """
    Active refresh token of a principal.

    Only the SHA-256 digest of the token value is stored. The unique
    constraint on ``principal`` enforces the single-active-token rule; the
    store replaces the row on issue and updates it conditionally on rotation.

    Fields
    ------
    principal : str
        ``User.public_id`` of the owner.
    token_hash : str
        Hex digest of the current token value.
    created_at / expires_at : datetime
        Issuance and absolute expiry of the current value.
    created_by_ip : str
        Client address of the request that obtained it.
    """

    __tablename__ = "refresh_tokens"

    principal: Mapped[str] = mapped_column(String(32), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by_ip: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")

    __table_args__ = (
        UniqueConstraint("principal", name="uq_refresh_tokens_principal"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )
