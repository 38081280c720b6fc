"""Session endpoints: register, login, refresh, logout, whoami."""

from __future__ import annotations

from flask import Blueprint, request

from tasktracker.api.deps import (
    bearer_token,
    call_service,
    get_session_service,
    get_user_service,
    json_response,
    require_auth,
    timing,
)
from tasktracker.core.proxy import client_address
from tasktracker.schemas import (
    LoginSchema,
    RefreshSchema,
    RegisterSchema,
    SessionTokensSchema,
    UserSchema,
    WhoAmISchema,
)
from tasktracker.services.auth.dto import AuthenticatedIdentity, LoginIn, LogoutIn, RefreshIn
from tasktracker.services.users.dto import UserRegisterIn

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
tokens_schema = SessionTokensSchema()
whoami_schema = WhoAmISchema()
register_schema = RegisterSchema()
user_schema = UserSchema()


@bp.post("/register")
@timing
def register():
    """Create an account with the default ``User`` role."""
    data = register_schema.load(request.get_json(silent=True) or {})
    user = call_service(get_user_service().register, UserRegisterIn(**data))
    return json_response({"data": user_schema.dump(user)}, status=201)


@bp.post("/login")
@timing
def login():
    """Verify credentials and return an access/refresh token pair."""
    data = login_schema.load(request.get_json(silent=True) or {})
    tokens = call_service(
        get_session_service().login,
        LoginIn(
            username=data["username"],
            password=data["password"],
            client_address=client_address(),
        ),
    )
    return json_response({"data": tokens_schema.dump(tokens)})


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the refresh token and return a new pair."""
    data = refresh_schema.load(request.get_json(silent=True) or {})
    tokens = call_service(
        get_session_service().refresh,
        RefreshIn(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            client_address=client_address(),
        ),
    )
    return json_response({"data": tokens_schema.dump(tokens)})


@bp.post("/logout")
@timing
def logout():
    """
    Revoke the bearer access token (and the refresh token, per configuration).

    Not behind the verification gate, so repeating the call succeeds. Only
    a live token also ends the refresh path; an expired or already revoked
    one leaves the principal's current session alone.
    """
    call_service(get_session_service().logout, LogoutIn(access_token=bearer_token()))
    return "", 204


@bp.get("/whoami")
@require_auth
@timing
def whoami(identity: AuthenticatedIdentity):
    """Return the identity established for this request."""
    return json_response({"data": whoami_schema.dump(identity)})
