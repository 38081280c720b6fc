"""Unit tests for configuration parsing and startup validation."""

from __future__ import annotations

from datetime import timedelta

import pytest

from tasktracker.core.config import (
    PLACEHOLDER_SECRET,
    AuthSettings,
    CacheSettings,
    ConfigurationError,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    env_bool,
    env_int,
    get_config,
    validate_config,
)


def _as_dict(cls) -> dict:
    return {k: getattr(cls, k) for k in dir(cls) if k.isupper()}


class TestEnvHelpers:
    @pytest.mark.parametrize(("raw", "expected"), [("1", True), ("Yes", True), ("off", False)])
    def test_env_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("FLAG", raw)
        assert env_bool("FLAG") is expected

    def test_env_bool_default(self, monkeypatch):
        monkeypatch.delenv("FLAG", raising=False)
        assert env_bool("FLAG", True) is True

    def test_env_int_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("NUM", "ten")
        with pytest.raises(ConfigurationError):
            env_int("NUM", 1)

    def test_get_config_follows_app_env(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "testing")
        assert get_config() is TestingConfig
        monkeypatch.setenv("APP_ENV", "unknown")
        assert get_config() is DevelopmentConfig


class TestValidate:
    def test_testing_config_is_valid(self):
        validate_config(_as_dict(TestingConfig))

    def test_placeholder_secret_refused_in_production(self):
        config = _as_dict(ProductionConfig) | {"JWT_SECRET_KEY": PLACEHOLDER_SECRET}
        with pytest.raises(ConfigurationError):
            validate_config(config)

    def test_missing_secret(self):
        with pytest.raises(ConfigurationError):
            validate_config(_as_dict(TestingConfig) | {"JWT_SECRET_KEY": ""})

    def test_unknown_refresh_backend(self):
        with pytest.raises(ConfigurationError):
            validate_config(_as_dict(TestingConfig) | {"REFRESH_TOKEN_BACKEND": "ldap"})

    def test_redis_backend_needs_url(self):
        with pytest.raises(ConfigurationError):
            validate_config(_as_dict(TestingConfig) | {"REFRESH_TOKEN_BACKEND": "redis"})


class TestSettings:
    def test_auth_settings_from_mapping(self):
        settings = AuthSettings.from_mapping(
            {
                "JWT_SECRET_KEY": "k" * 32,
                "ACCESS_TOKEN_TTL_MINUTES": 5,
                "REFRESH_TOKEN_TTL_DAYS": 2,
                "REVOCATION_FAIL_OPEN": False,
            }
        )
        assert settings.access_ttl == timedelta(minutes=5)
        assert settings.refresh_ttl == timedelta(days=2)
        assert settings.revocation_fail_open is False
        assert settings.logout_revokes_refresh is True

    def test_non_positive_lifetimes(self):
        with pytest.raises(ConfigurationError):
            AuthSettings.from_mapping({"ACCESS_TOKEN_TTL_MINUTES": 0})

    def test_cache_settings_defaults(self):
        settings = CacheSettings.from_mapping({})
        assert settings.default_ttl == timedelta(minutes=15)
        assert settings.instance_name == "TaskManagementAPI"
        assert settings.redis_url is None
