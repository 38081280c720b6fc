"""Early revocation of access tokens (the blacklist)."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta

from tasktracker.core.clock import Clock, SystemClock, as_utc
from tasktracker.infra.cache import keys
from tasktracker.infra.cache.coordinator import CacheCoordinator
from tasktracker.services._shared.errors import CacheUnavailableError

log = logging.getLogger(__name__)

# Stored value; only presence matters.
_MARK = "revoked"


class RevocationRegistry:
    """
    Blacklist of access token ids, kept in the cache.

    An entry lives exactly as long as the token it guards could still pass
    signature and expiry checks, so it never needs an explicit delete.

    :param cache: Cache coordinator holding the entries.
    :param clock: Time source used to compute entry lifetimes.
    :param fail_open: Outcome of :meth:`is_revoked` when the cache is down
        (``True`` treats the token as not revoked).
    """

    def __init__(
        self,
        cache: CacheCoordinator,
        *,
        clock: Clock | None = None,
        fail_open: bool = True,
    ) -> None:
        self.cache = cache
        self.clock = clock or SystemClock()
        self.fail_open = fail_open

    def revoke(self, token_id: str, guarded_expiry: datetime) -> bool:
        """
        Blacklist ``token_id`` until ``guarded_expiry``.

        The lifetime is rounded up to whole seconds. A token already past its
        expiry is rejected by the codec anyway, so nothing is written.

        :returns: ``True`` when an entry was written.
        """
        remaining = (as_utc(guarded_expiry) - self.clock.now()).total_seconds()
        seconds = math.ceil(remaining)
        if seconds <= 0:
            return False
        written = self.cache.set(keys.revoked_token(token_id), _MARK, ttl=timedelta(seconds=seconds))
        if not written:
            log.warning("revocation.write_failed", extra={"jti": token_id})
        return written

    def is_revoked(self, token_id: str) -> bool:
        try:
            return self.cache.contains(keys.revoked_token(token_id))
        except CacheUnavailableError:
            log.warning(
                "revocation.cache_unavailable",
                extra={"jti": token_id, "reason": "fail_open" if self.fail_open else "fail_closed"},
                exc_info=True,
            )
            return not self.fail_open
