from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, TypeVar

import redis

from tasktracker.infra.cache.backend import CacheBackend
from tasktracker.services._shared.errors import CacheUnavailableError

log = logging.getLogger(__name__)

T = TypeVar("T")

# Failures of the backend itself (network, timeouts, refused connections)
BACKEND_ERRORS: tuple[type[Exception], ...] = (redis.RedisError, OSError)

_GLOB_SPECIALS = re.compile(r"([\\*?\[\]])")


@dataclass(frozen=True, slots=True)
class Invalidation:
    """
    Cache entries made stale by a mutation.

    Built at the mutation call site with :mod:`tasktracker.infra.cache.keys`.

    :param keys: Exact keys to remove.
    :param prefixes: Key prefixes whose every entry must be removed
        (paged listings whose page/size combinations are not enumerable).
    """

    keys: tuple[str, ...] = ()
    prefixes: tuple[str, ...] = ()

    def __or__(self, other: Invalidation) -> Invalidation:
        return Invalidation(
            keys=tuple(dict.fromkeys(self.keys + other.keys)),
            prefixes=tuple(dict.fromkeys(self.prefixes + other.prefixes)),
        )


class CacheCoordinator:
    """
    Namespaced JSON cache over a Redis-compatible backend.

    Every operation except :meth:`contains` treats backend failures as
    non-fatal: reads degrade to a miss and writes/removals are skipped, both
    logged. The cache is an optimization and never fails a request.

    :param backend: ``redis.Redis`` or :class:`InMemoryCacheBackend`.
    :param default_ttl: Lifetime applied when ``set`` gets no override.
    :param instance_name: Namespace prepended to every key.
    """

    def __init__(
        self,
        backend: CacheBackend,
        *,
        default_ttl: timedelta = timedelta(minutes=15),
        instance_name: str = "TaskManagementAPI",
    ) -> None:
        self.backend = backend
        self.default_ttl = default_ttl
        self.instance_name = instance_name

    def _k(self, key: str) -> str:
        return f"{self.instance_name}:{key}"

    # ------------------------------------------------------------------ reads

    def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` on a miss or any failure."""
        try:
            raw = self.backend.get(self._k(key))
        except BACKEND_ERRORS:
            log.warning("cache.get_failed", extra={"cache_key": key}, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning("cache.decode_failed", extra={"cache_key": key}, exc_info=True)
            return None

    def contains(self, key: str) -> bool:
        """
        Strict existence check.

        :raises CacheUnavailableError: When the backend cannot answer. Callers
            that need a policy for outages (revocation checks) use this
            instead of :meth:`get`.
        """
        try:
            return bool(self.backend.exists(self._k(key)))
        except BACKEND_ERRORS as exc:
            raise CacheUnavailableError(f"Cache unavailable while probing {key!r}") from exc

    def get_or_set(
        self,
        key: str,
        loader: Callable[[], T],
        ttl: timedelta | None = None,
    ) -> T:
        """Read-through helper: load and store on a miss. ``None`` is never cached."""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = loader()
        if value is not None:
            self.set(key, value, ttl)
        return value

    # ----------------------------------------------------------------- writes

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> bool:
        """
        Store ``value`` as JSON for ``ttl`` (default TTL when omitted).

        :returns: ``True`` if written. A non-positive TTL writes nothing.
        """
        seconds = math.ceil((ttl if ttl is not None else self.default_ttl).total_seconds())
        if seconds <= 0:
            return False
        try:
            payload = json.dumps(value, default=str, separators=(",", ":"))
        except (TypeError, ValueError):
            log.warning("cache.encode_failed", extra={"cache_key": key}, exc_info=True)
            return False
        try:
            self.backend.set(self._k(key), payload.encode("utf-8"), ex=seconds)
        except BACKEND_ERRORS:
            log.warning("cache.set_failed", extra={"cache_key": key}, exc_info=True)
            return False
        return True

    def remove(self, key: str) -> bool:
        try:
            return bool(self.backend.delete(self._k(key)))
        except BACKEND_ERRORS:
            log.warning("cache.remove_failed", extra={"cache_key": key}, exc_info=True)
            return False

    def remove_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``. :returns: count removed."""
        pattern = _GLOB_SPECIALS.sub(r"\\\1", self._k(prefix)) + "*"
        try:
            names = list(self.backend.scan_iter(match=pattern, count=500))
            if not names:
                return 0
            return int(self.backend.delete(*names))
        except BACKEND_ERRORS:
            log.warning("cache.remove_failed", extra={"cache_key": f"{prefix}*"}, exc_info=True)
            return 0

    def remove_many(self, keys: Iterable[str]) -> int:
        return sum(1 for key in keys if self.remove(key))

    def invalidate(self, invalidation: Invalidation) -> int:
        """Apply an :class:`Invalidation`. :returns: number of entries removed."""
        removed = self.remove_many(invalidation.keys)
        for prefix in invalidation.prefixes:
            removed += self.remove_prefix(prefix)
        if removed:
            log.debug("cache.invalidated", extra={"cache_key": ",".join(invalidation.keys)})
        return removed
