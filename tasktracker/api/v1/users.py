"""User endpoints: admin listing and the caller's own account."""

from __future__ import annotations

from flask import Blueprint, request

from tasktracker.api.deps import (
    call_service,
    get_user_service,
    json_response,
    parse_pagination,
    require_auth,
    require_role,
    timing,
)
from tasktracker.models.role import ADMIN
from tasktracker.schemas import MetaSchema, UserSchema, UserUpdateSchema
from tasktracker.services.auth.dto import AuthenticatedIdentity
from tasktracker.services.users.dto import UserUpdateIn

bp = Blueprint("users", __name__)

user_schema = UserSchema()
user_list_schema = UserSchema(many=True)
update_schema = UserUpdateSchema()
meta_schema = MetaSchema()


@bp.get("")
@require_role(ADMIN)
@timing
def list_users(identity: AuthenticatedIdentity):
    """Return paginated accounts."""
    page = call_service(get_user_service().list_users, identity, parse_pagination())
    return json_response(
        {"data": user_list_schema.dump(page.items), "meta": meta_schema.dump(page.meta.to_dict())}
    )


@bp.get("/me")
@require_auth
@timing
def get_me(identity: AuthenticatedIdentity):
    user = call_service(get_user_service().get_self, identity)
    return json_response({"data": user_schema.dump(user)})


@bp.put("/me")
@require_auth
@timing
def update_me(identity: AuthenticatedIdentity):
    changes = update_schema.load(request.get_json(silent=True) or {})
    user = call_service(get_user_service().update_self, identity, UserUpdateIn(changes))
    return json_response({"data": user_schema.dump(user)})


@bp.delete("/me")
@require_auth
@timing
def delete_me(identity: AuthenticatedIdentity):
    """Delete the account, its tasks and its session."""
    call_service(get_user_service().delete_self, identity)
    return "", 204
