from __future__ import annotations

import logging
from collections.abc import Callable
from typing import NoReturn
from uuid import uuid4

from tasktracker.core.clock import Clock
from tasktracker.core.config import AuthSettings
from tasktracker.services._shared.base import BaseService
from tasktracker.services._shared.errors import (
    InvalidCredentialsError,
    InvalidTokenError,
    SessionExpiredError,
)
from tasktracker.services._shared.ports import (
    AccessClaims,
    RefreshTokenStore,
    RotationResult,
    TokenCodec,
    UserDirectory,
)
from tasktracker.services.auth.dto import (
    AuthenticatedIdentity,
    LoginIn,
    LogoutIn,
    RefreshIn,
    SessionTokens,
)
from tasktracker.services.auth.revocation import RevocationRegistry

log = logging.getLogger(__name__)


def _new_token_id() -> str:
    return uuid4().hex


class SessionService(BaseService):
    """
    Session lifecycle service (login / refresh / logout / authenticate).

    States of a credential pair::

        Anonymous -> Authenticated(access, refresh)
                  -> Authenticated(new access, rotated refresh)*
                  -> Revoked | NaturallyExpired

    Access tokens come from a :class:`TokenCodec`, refresh tokens from a
    :class:`RefreshTokenStore` (single active token per principal, atomic
    rotation), and early revocation of access tokens goes through the
    :class:`RevocationRegistry`. Store failures propagate as
    ``StoreUnavailableError``; nothing here retries.
    """

    def __init__(
        self,
        *,
        codec: TokenCodec,
        refresh_store: RefreshTokenStore,
        revocations: RevocationRegistry,
        directory: UserDirectory,
        settings: AuthSettings,
        clock: Clock | None = None,
        token_ids: Callable[[], str] = _new_token_id,
    ) -> None:
        """
        :param codec: Access token signer/verifier.
        :param refresh_store: Durable refresh token state.
        :param revocations: Access token blacklist.
        :param directory: Credential verification and roles.
        :param settings: Session policy switches.
        :param clock: Time source (wall clock by default).
        :param token_ids: ``jti`` generator; every issued access token gets a fresh one.
        """
        super().__init__(clock=clock)
        self.codec = codec
        self.refresh_store = refresh_store
        self.revocations = revocations
        self.directory = directory
        self.settings = settings
        self._token_ids = token_ids

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> SessionTokens:
        """
        Verify credentials and open a session.

        :raises InvalidCredentialsError: Unknown login or wrong password.
        :raises StoreUnavailableError: The refresh token could not be persisted.
        """
        principal = self.directory.resolve_principal(dto.username)
        if principal is None or not self.directory.verify_credentials(principal, dto.password):
            log.info("auth.login_failed", extra={"client_address": dto.client_address})
            raise InvalidCredentialsError()

        roles = self.directory.get_roles(principal)
        now = self.clock.now()

        # Durable state first: no token reaches the client without it.
        refresh = self.refresh_store.issue(principal, dto.client_address, now)
        access = self.codec.issue(principal, roles, now, token_id=self._token_ids())

        log.info(
            "auth.login",
            extra={"principal": principal, "client_address": dto.client_address},
        )
        return SessionTokens(
            access_token=access.token,
            access_expires_at=access.expires_at,
            refresh_token=refresh.value,
            refresh_expires_at=refresh.expires_at,
        )

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> SessionTokens:
        """
        Exchange an (expired) access token plus the current refresh token for a new pair.

        The refresh token is single-use: presenting a stale value is treated
        as theft and, when ``reuse_revokes_session`` is set, closes the session
        for everyone holding it.

        :raises InvalidTokenError: Bad/revoked access token, or unknown/stale refresh token.
        :raises SessionExpiredError: The refresh token reached its expiry.
        :raises StoreUnavailableError: The refresh store could not be reached.
        """
        claims = self._decode(dto.access_token, check_expiry=False)
        if self.revocations.is_revoked(claims.token_id):
            self._reject("revoked", claims.principal)

        principal = claims.principal
        now = self.clock.now()
        rotation = self.refresh_store.rotate(principal, dto.refresh_token, dto.client_address, now)

        if rotation.result is RotationResult.MISMATCH:
            log.warning(
                "auth.refresh_reuse_detected",
                extra={"principal": principal, "client_address": dto.client_address},
            )
            if self.settings.reuse_revokes_session:
                self.refresh_store.revoke(principal)
            self._reject("refresh_mismatch", principal)
        if rotation.result is RotationResult.EXPIRED:
            log.info("auth.session_expired", extra={"principal": principal})
            raise SessionExpiredError()
        if rotation.result is not RotationResult.OK or rotation.token is None:
            self._reject("refresh_not_found", principal)

        # Roles may have changed since the previous token was signed.
        roles = self.directory.get_roles(principal)
        access = self.codec.issue(principal, roles, now, token_id=self._token_ids())

        log.info(
            "auth.refresh",
            extra={"principal": principal, "client_address": dto.client_address},
        )
        return SessionTokens(
            access_token=access.token,
            access_expires_at=access.expires_at,
            refresh_token=rotation.token.value,
            refresh_expires_at=rotation.token.expires_at,
        )

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the access token until its natural expiry.

        Idempotent: a second call with the same token rewrites the same entry.
        With ``logout_revokes_refresh`` (default) the principal's refresh
        token is deleted as well, but only when the presented access token is
        still live: an expired or already revoked token cannot close a newer
        session of the same principal.

        :raises InvalidTokenError: The token is not one this issuer signed.
        """
        claims = self._decode(dto.access_token, check_expiry=False)
        live = self.clock.now() < claims.expires_at and not self.revocations.is_revoked(
            claims.token_id
        )
        self.revocations.revoke(claims.token_id, claims.expires_at)
        if live and self.settings.logout_revokes_refresh:
            self.refresh_store.revoke(claims.principal)
        log.info(
            "auth.logout",
            extra={
                "principal": claims.principal,
                "jti": claims.token_id,
                "reason": "live" if live else "inert",
            },
        )

    # ------------------------------------------------------------------ #
    # Verification gate
    # ------------------------------------------------------------------ #

    def authenticate(self, access_token: str) -> AuthenticatedIdentity:
        """
        Per-request verification: signature, claims and expiry, then the blacklist.

        :raises InvalidTokenError: On any failure (same message for every reason).
        """
        claims = self._decode(access_token, check_expiry=True)
        if self.revocations.is_revoked(claims.token_id):
            self._reject("revoked", claims.principal)
        return AuthenticatedIdentity(
            principal=claims.principal,
            roles=frozenset(claims.roles),
            token_id=claims.token_id,
            expires_at=claims.expires_at,
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _decode(self, token: str, *, check_expiry: bool) -> AccessClaims:
        try:
            if check_expiry:
                return self.codec.verify(token, self.clock.now())
            return self.codec.verify_ignoring_expiry(token)
        except InvalidTokenError as exc:
            log.info("auth.token_rejected", extra={"reason": exc.reason})
            raise

    @staticmethod
    def _reject(reason: str, principal: str) -> NoReturn:
        log.info("auth.token_rejected", extra={"reason": reason, "principal": principal})
        raise InvalidTokenError(reason)
