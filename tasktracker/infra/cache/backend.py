"""Key/value backends understood by :class:`~tasktracker.infra.cache.coordinator.CacheCoordinator`."""

from __future__ import annotations

import re
import threading
from collections.abc import Iterator
from datetime import datetime, timedelta
from typing import Protocol

from tasktracker.core.clock import Clock, SystemClock


class CacheBackend(Protocol):
    """
    The subset of the ``redis.Redis`` client API the coordinator relies on.

    ``redis.Redis`` satisfies it as-is; :class:`InMemoryCacheBackend` mimics it.
    """

    def get(self, name: str) -> bytes | None: ...

    def set(self, name: str, value: bytes, ex: int | None = None) -> bool | None: ...

    def delete(self, *names: str | bytes) -> int: ...

    def exists(self, *names: str) -> int: ...

    def scan_iter(self, match: str | None = None, count: int | None = None) -> Iterator: ...


def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a Redis ``MATCH`` glob (``*``, ``?``, ``[...]``, ``\\`` escapes)."""
    out: list[str] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1 : end].replace("\\", "\\\\")
                out.append(f"[{body}]")
                i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("".join(out), re.DOTALL)


class InMemoryCacheBackend:
    """
    Process-local cache with Redis-like TTL semantics.

    Expiry is evaluated lazily against the injected clock, so tests can move
    time forward without sleeping.

    :param clock: Time source (defaults to the wall clock).
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()
        self._data: dict[str, tuple[bytes, datetime | None]] = {}
        self._lock = threading.Lock()

    def _alive(self, name: str) -> bytes | None:
        item = self._data.get(name)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and self._clock.now() >= expires_at:
            del self._data[name]
            return None
        return value

    def get(self, name: str) -> bytes | None:
        with self._lock:
            return self._alive(name)

    def set(self, name: str, value: bytes, ex: int | None = None) -> bool:
        if isinstance(value, str):
            value = value.encode("utf-8")
        expires_at = self._clock.now() + timedelta(seconds=ex) if ex else None
        with self._lock:
            self._data[name] = (value, expires_at)
        return True

    def delete(self, *names: str | bytes) -> int:
        removed = 0
        with self._lock:
            for name in names:
                key = name.decode() if isinstance(name, bytes) else name
                if self._alive(key) is not None:
                    del self._data[key]
                    removed += 1
        return removed

    def exists(self, *names: str) -> int:
        with self._lock:
            return sum(1 for name in names if self._alive(name) is not None)

    def scan_iter(self, match: str | None = None, count: int | None = None) -> Iterator[str]:
        regex = _glob_to_regex(match) if match is not None else None
        with self._lock:
            names = [n for n in list(self._data) if self._alive(n) is not None]
        for name in names:
            if regex is None or regex.fullmatch(name):
                yield name

    def ttl(self, name: str) -> int:
        """Remaining lifetime in seconds (``-1`` no expiry, ``-2`` missing)."""
        with self._lock:
            if self._alive(name) is None:
                return -2
            expires_at = self._data[name][1]
        if expires_at is None:
            return -1
        return int((expires_at - self._clock.now()).total_seconds())

    def flushall(self) -> None:
        with self._lock:
            self._data.clear()
