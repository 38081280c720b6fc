"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class LoginSchema(Schema):
    """Input payload for opening a session (username or email)."""

    username = fields.String(required=True, validate=validate.Length(min=1, max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Input payload for rotating a session."""

    access_token = fields.String(required=True, validate=validate.Length(min=1))
    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=512))


class SessionTokensSchema(Schema):
    """Response payload for login and refresh."""

    access_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")
    access_expires_at = fields.DateTime(required=True)
    refresh_token = fields.String(required=True)
    refresh_expires_at = fields.DateTime(required=True)


class WhoAmISchema(Schema):
    """Identity established by the access token of the current request."""

    principal = fields.String(required=True)
    roles = fields.Function(lambda obj: sorted(obj.roles))
    token_id = fields.String(required=True)
    expires_at = fields.DateTime(required=True)
