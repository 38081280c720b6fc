"""
Contract tests shared by every refresh token store implementation.

The same scenarios run against the in-memory, SQL and Redis (fakeredis)
stores: single active token per principal, atomic single-use rotation and
classification of failed rotations.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import fakeredis
import pytest
from sqlalchemy.exc import OperationalError

from tasktracker.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore
from tasktracker.infra.sql.sql_refresh_token_store import SQLRefreshTokenStore
from tasktracker.services._shared.errors import StoreUnavailableError
from tasktracker.services._shared.ports import (
    InMemoryRefreshTokenStore,
    RotationResult,
    digest_token,
)

TTL = timedelta(days=7)
NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(params=["memory", "sql", "redis"])
def store(request):
    """Provide each store implementation in turn."""
    if request.param == "memory":
        return InMemoryRefreshTokenStore(ttl=TTL)
    if request.param == "sql":
        request.getfixturevalue("app")
        return SQLRefreshTokenStore(ttl=TTL)
    r = fakeredis.FakeRedis()
    r.flushall()
    return RedisRefreshTokenStore(r=r, ttl=TTL)


class TestIssue:
    def test_issue_returns_opaque_value_and_stores_only_its_digest(self, store):
        token = store.issue("alice", "10.0.0.1", NOW)

        assert len(token.value) >= 64
        assert token.expires_at == NOW + TTL
        view = store.get("alice")
        assert view is not None
        assert view.token_digest == digest_token(token.value)
        assert view.token_digest != token.value
        assert view.client_address == "10.0.0.1"
        assert view.expires_at == NOW + TTL

    def test_second_issue_replaces_the_first(self, store):
        first = store.issue("alice", "a", NOW)
        second = store.issue("alice", "b", NOW + timedelta(minutes=1))

        assert first.value != second.value
        assert store.rotate("alice", first.value, "a", NOW).result is RotationResult.MISMATCH
        assert store.rotate("alice", second.value, "b", NOW).ok

    def test_principals_are_independent(self, store):
        store.issue("alice", "a", NOW)
        bob = store.issue("bob", "b", NOW)
        store.revoke("alice")
        assert store.get("alice") is None
        assert store.rotate("bob", bob.value, "b", NOW).ok


class TestRotate:
    def test_rotation_is_single_use(self, store):
        original = store.issue("alice", "a", NOW)

        rotation = store.rotate("alice", original.value, "a", NOW + timedelta(hours=1))
        assert rotation.ok
        assert rotation.token is not None
        assert rotation.token.value != original.value
        assert rotation.token.expires_at == NOW + timedelta(hours=1) + TTL

        replay = store.rotate("alice", original.value, "a", NOW + timedelta(hours=2))
        assert replay.result is RotationResult.MISMATCH
        assert replay.token is None

    def test_unknown_principal_is_not_found(self, store):
        assert store.rotate("ghost", "whatever", "a", NOW).result is RotationResult.NOT_FOUND

    def test_after_revoke_is_not_found(self, store):
        token = store.issue("alice", "a", NOW)
        assert store.revoke("alice") is True
        assert store.revoke("alice") is False
        assert store.rotate("alice", token.value, "a", NOW).result is RotationResult.NOT_FOUND

    def test_expired_token(self, store):
        token = store.issue("alice", "a", NOW)
        result = store.rotate("alice", token.value, "a", NOW + TTL)
        assert result.result is RotationResult.EXPIRED

    def test_mismatch_is_reported_before_expiry(self, store):
        store.issue("alice", "a", NOW)
        result = store.rotate("alice", "stale-value", "a", NOW + TTL + timedelta(days=1))
        assert result.result is RotationResult.MISMATCH


class TestPurge:
    def test_purge_expired_removes_only_dead_tokens(self, store):
        store.issue("alice", "a", NOW)
        store.issue("bob", "b", NOW + timedelta(days=3))

        removed = store.purge_expired(NOW + TTL)

        assert removed == 1
        assert store.get("alice") is None
        assert store.get("bob") is not None


def test_concurrent_rotation_has_exactly_one_winner():
    store = InMemoryRefreshTokenStore(ttl=TTL)
    token = store.issue("alice", "a", NOW)
    barrier = threading.Barrier(8)
    results: list[RotationResult] = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        outcome = store.rotate("alice", token.value, "a", NOW)
        with lock:
            results.append(outcome.result)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(RotationResult.OK) == 1
    assert results.count(RotationResult.MISMATCH) == 7


def test_memory_reads_during_rotation_see_an_issued_token():
    store = InMemoryRefreshTokenStore(ttl=TTL)
    current = store.issue("alice", "a", NOW)
    issued = {digest_token(current.value)}
    seen: list[str] = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            seen.append(store.get("alice").token_digest)

    thread = threading.Thread(target=reader)
    thread.start()
    for _ in range(200):
        current = store.rotate("alice", current.value, "a", NOW).token
        issued.add(digest_token(current.value))
    done.set()
    thread.join()

    assert seen
    assert set(seen) <= issued


def test_redis_concurrent_rotation_has_exactly_one_winner():
    server = fakeredis.FakeServer()
    token = RedisRefreshTokenStore(r=fakeredis.FakeRedis(server=server), ttl=TTL).issue(
        "alice", "a", NOW
    )
    barrier = threading.Barrier(16)
    results: list[RotationResult] = []
    lock = threading.Lock()

    def worker():
        store = RedisRefreshTokenStore(r=fakeredis.FakeRedis(server=server), ttl=TTL)
        barrier.wait()
        outcome = store.rotate("alice", token.value, "a", NOW)
        with lock:
            results.append(outcome.result)

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 16
    assert results.count(RotationResult.OK) == 1
    assert results.count(RotationResult.MISMATCH) == 15


def test_sql_rotation_loses_to_a_rotation_committed_first(app, monkeypatch):
    from tasktracker.repositories.refresh_token import RefreshTokenRepository

    store = SQLRefreshTokenStore(ttl=TTL)
    token = store.issue("alice", "a", NOW)
    real_swap = RefreshTokenRepository.compare_and_swap
    winner: list = []

    def competitor_commits_first(self, **kwargs):
        if not winner:
            winner.append(None)
            winner[0] = store.rotate("alice", token.value, "b", NOW)
        return real_swap(self, **kwargs)

    monkeypatch.setattr(RefreshTokenRepository, "compare_and_swap", competitor_commits_first)

    loser = store.rotate("alice", token.value, "a", NOW)

    assert winner[0].ok
    assert loser.result is RotationResult.MISMATCH
    assert loser.token is None
    assert store.get("alice").token_digest == digest_token(winner[0].token.value)
    assert store.rotate("alice", token.value, "a", NOW).result is RotationResult.MISMATCH


def test_redis_store_outage_raises_store_unavailable():
    server = fakeredis.FakeServer()
    store = RedisRefreshTokenStore(r=fakeredis.FakeRedis(server=server), ttl=TTL)
    server.connected = False

    with pytest.raises(StoreUnavailableError):
        store.issue("alice", "a", NOW)
    with pytest.raises(StoreUnavailableError):
        store.rotate("alice", "x", "a", NOW)


def test_sql_store_database_error_raises_store_unavailable(app, monkeypatch):
    store = SQLRefreshTokenStore(ttl=TTL)
    token = store.issue("alice", "a", NOW)

    from tasktracker.repositories.refresh_token import RefreshTokenRepository

    def broken(*args, **kwargs):
        raise OperationalError("UPDATE refresh_tokens", {}, Exception("database is locked"))

    monkeypatch.setattr(RefreshTokenRepository, "compare_and_swap", broken)

    with pytest.raises(StoreUnavailableError):
        store.rotate("alice", token.value, "a", NOW)
