"""Unit tests for the HS256 access token codec."""

from __future__ import annotations

import base64
import json
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import jwt
import pytest

from tasktracker.core.config import AuthSettings, ConfigurationError
from tasktracker.infra.jwt.token_codec import JWTTokenCodec
from tasktracker.services._shared.errors import InvalidTokenError

SECRET = "unit-test-secret-key-with-32-bytes-min!"
NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def settings() -> AuthSettings:
    return AuthSettings(
        secret_key=SECRET,
        issuer="tasktracker",
        audience="tasktracker-clients",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
    )


@pytest.fixture
def codec(settings) -> JWTTokenCodec:
    return JWTTokenCodec(settings)


def _payload(**overrides):
    iat = int(NOW.timestamp())
    data = {
        "sub": "alice",
        "roles": ["User"],
        "iat": iat,
        "exp": iat + 900,
        "jti": "abc",
        "iss": "tasktracker",
        "aud": "tasktracker-clients",
        "type": "access",
    }
    data.update(overrides)
    return data


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


class TestIssue:
    def test_claims_round_trip(self, codec):
        issued = codec.issue("alice", {"User", "Admin"}, NOW, token_id="t-1")
        claims = codec.verify(issued.token, NOW)

        assert claims.principal == "alice"
        assert claims.roles == ("Admin", "User")
        assert claims.token_id == "t-1"
        assert claims.issued_at == NOW
        assert claims.expires_at == NOW + timedelta(minutes=15)
        assert issued.expires_at == claims.expires_at

    def test_issue_is_deterministic_for_same_inputs(self, codec):
        a = codec.issue("alice", ["User"], NOW)
        b = codec.issue("alice", ["User"], NOW)
        assert a.token == b.token
        assert a.claims.token_id == b.claims.token_id

    def test_explicit_token_id_changes_the_token(self, codec):
        a = codec.issue("alice", ["User"], NOW, token_id="one")
        b = codec.issue("alice", ["User"], NOW, token_id="two")
        assert a.token != b.token

    def test_subsecond_instant_is_truncated(self, codec):
        issued = codec.issue("alice", [], NOW + timedelta(milliseconds=900))
        assert issued.claims.issued_at == NOW

    def test_empty_secret_is_a_configuration_error(self, settings):
        with pytest.raises(ConfigurationError):
            JWTTokenCodec(replace(settings, secret_key=""))


class TestExpiryBoundary:
    def test_valid_one_second_before_exp(self, codec):
        issued = codec.issue("alice", [], NOW)
        claims = codec.verify(issued.token, issued.expires_at - timedelta(seconds=1))
        assert claims.principal == "alice"

    def test_invalid_exactly_at_exp(self, codec):
        issued = codec.issue("alice", [], NOW)
        with pytest.raises(InvalidTokenError) as exc:
            codec.verify(issued.token, issued.expires_at)
        assert exc.value.reason == "expired"

    def test_ignoring_expiry_still_checks_signature(self, codec):
        issued = codec.issue("alice", [], NOW)
        claims = codec.verify_ignoring_expiry(issued.token)
        assert claims.token_id == issued.claims.token_id

        header, payload, signature = issued.token.split(".")
        forged = ".".join([header, _b64(_payload(sub="mallory")), signature])
        with pytest.raises(InvalidTokenError):
            codec.verify_ignoring_expiry(forged)


class TestRejection:
    def test_flipped_signature_character(self, codec):
        token = codec.issue("alice", [], NOW).token
        header, payload, signature = token.split(".")
        swapped = "A" if signature[5] != "A" else "B"
        tampered = ".".join([header, payload, signature[:5] + swapped + signature[6:]])

        with pytest.raises(InvalidTokenError) as exc:
            codec.verify(tampered, NOW)
        assert exc.value.reason == "signature"

    def test_wrong_key(self, codec):
        token = jwt.encode(_payload(), "another-secret-key-of-sufficient-length", algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            codec.verify(token, NOW)

    @pytest.mark.parametrize("alg", ["none", "HS512"])
    def test_other_algorithms_are_refused(self, codec, alg):
        key = None if alg == "none" else SECRET * 2
        token = jwt.encode(_payload(), key, algorithm=alg)
        with pytest.raises(InvalidTokenError) as exc:
            codec.verify(token, NOW)
        assert exc.value.reason == "algorithm"

    @pytest.mark.parametrize(
        ("claim", "value", "reason"),
        [
            ("iss", "someone-else", "issuer"),
            ("aud", "other-clients", "audience"),
            ("type", "refresh", "token_type"),
        ],
    )
    def test_wrong_claims(self, codec, claim, value, reason):
        token = jwt.encode(_payload(**{claim: value}), SECRET, algorithm="HS256")
        with pytest.raises(InvalidTokenError) as exc:
            codec.verify(token, NOW)
        assert exc.value.reason == reason

    def test_missing_jti(self, codec):
        payload = _payload()
        del payload["jti"]
        token = jwt.encode(payload, SECRET, algorithm="HS256")
        with pytest.raises(InvalidTokenError) as exc:
            codec.verify(token, NOW)
        assert exc.value.reason == "missing_claim"

    @pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
    def test_garbage(self, codec, token):
        with pytest.raises(InvalidTokenError):
            codec.verify(token, NOW)

    def test_public_message_never_names_the_reason(self, codec):
        with pytest.raises(InvalidTokenError) as exc:
            codec.verify("not-a-jwt", NOW)
        assert str(exc.value) == InvalidTokenError.PUBLIC_MESSAGE
