"""User resource schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class RegisterSchema(Schema):
    """Self-registration payload."""

    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))
    country = fields.String(load_default=None, validate=validate.Length(max=64))


class UserUpdateSchema(Schema):
    """Profile changes of the caller; unknown keys (roles, password) are rejected."""

    username = fields.String(validate=validate.Length(min=3, max=50))
    email = fields.Email(validate=validate.Length(max=254))
    country = fields.String(allow_none=True, validate=validate.Length(max=64))


class UserSchema(Schema):
    """Public representation of an account; ``id`` is the token principal."""

    class Meta:
        ordered = True

    id = fields.String(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    country = fields.String(allow_none=True)
    roles = fields.List(fields.String())
    created_at = fields.DateTime(required=True)
