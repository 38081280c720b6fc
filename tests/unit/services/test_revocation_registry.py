"""Unit tests for the access token blacklist."""

from __future__ import annotations

from datetime import timedelta

import fakeredis
import pytest

from tasktracker.core.clock import FrozenClock
from tasktracker.infra.cache.backend import InMemoryCacheBackend
from tasktracker.infra.cache.coordinator import CacheCoordinator
from tasktracker.services.auth.revocation import RevocationRegistry


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def backend(clock) -> InMemoryCacheBackend:
    return InMemoryCacheBackend(clock=clock)


@pytest.fixture
def registry(backend, clock) -> RevocationRegistry:
    return RevocationRegistry(CacheCoordinator(backend), clock=clock)


def test_entry_lives_exactly_until_the_token_expires(registry, clock):
    expiry = clock.now() + timedelta(minutes=10)

    assert registry.revoke("jti-1", expiry) is True
    assert registry.is_revoked("jti-1") is True

    clock.set(expiry - timedelta(seconds=1))
    assert registry.is_revoked("jti-1") is True

    clock.set(expiry)
    assert registry.is_revoked("jti-1") is False


def test_ttl_is_rounded_up_to_whole_seconds(registry, backend, clock):
    registry.revoke("jti-1", clock.now() + timedelta(seconds=4, milliseconds=200))
    assert backend.ttl("TaskManagementAPI:revoked:at:jti-1") == 5


def test_already_expired_token_is_not_written(registry, clock):
    assert registry.revoke("jti-1", clock.now()) is False
    assert registry.revoke("jti-2", clock.now() - timedelta(minutes=1)) is False
    assert registry.is_revoked("jti-1") is False


def test_revoke_is_idempotent(registry, clock):
    expiry = clock.now() + timedelta(minutes=5)
    assert registry.revoke("jti-1", expiry)
    assert registry.revoke("jti-1", expiry)
    assert registry.is_revoked("jti-1")


def test_other_ids_are_unaffected(registry, clock):
    registry.revoke("jti-1", clock.now() + timedelta(minutes=5))
    assert registry.is_revoked("jti-2") is False


@pytest.mark.parametrize(("fail_open", "expected"), [(True, False), (False, True)])
def test_outage_policy(clock, fail_open, expected, caplog):
    server = fakeredis.FakeServer()
    cache = CacheCoordinator(fakeredis.FakeRedis(server=server))
    registry = RevocationRegistry(cache, clock=clock, fail_open=fail_open)
    server.connected = False

    assert registry.is_revoked("jti-1") is expected
    assert registry.revoke("jti-1", clock.now() + timedelta(minutes=5)) is False
    assert "revocation.cache_unavailable" in caplog.text
