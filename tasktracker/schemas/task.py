"""Task Marshmallow schemas."""

from __future__ import annotations

from datetime import UTC

from marshmallow import Schema, fields, validate

from tasktracker.models.task import TASK_STATUSES


class TaskSchema(Schema):
    """Serialize :class:`~tasktracker.services.tasks.dto.TaskOut`."""

    class Meta:
        ordered = True

    id = fields.Integer(dump_only=True)
    title = fields.String()
    description = fields.String()
    status = fields.String()
    due_date = fields.DateTime()
    owner = fields.String(dump_only=True)


class TaskCreateSchema(Schema):
    """Validate payloads when creating tasks."""

    title = fields.String(required=True, validate=validate.Length(min=1, max=200))
    description = fields.String(load_default="", validate=validate.Length(max=10_000))
    status = fields.String(load_default="Pending", validate=validate.OneOf(TASK_STATUSES))
    due_date = fields.AwareDateTime(required=True, default_timezone=UTC)


class TaskUpdateSchema(Schema):
    """Partial updates; unknown keys are rejected."""

    title = fields.String(validate=validate.Length(min=1, max=200))
    description = fields.String(validate=validate.Length(max=10_000))
    status = fields.String(validate=validate.OneOf(TASK_STATUSES))
    due_date = fields.AwareDateTime(default_timezone=UTC)
