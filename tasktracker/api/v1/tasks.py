"""Task endpoints (cached reads, invalidating writes)."""

from __future__ import annotations

from flask import Blueprint, request

from tasktracker.api.deps import (
    call_service,
    get_task_service,
    json_response,
    parse_pagination,
    require_auth,
    require_role,
    timing,
)
from tasktracker.models.role import ADMIN
from tasktracker.schemas import MetaSchema, TaskCreateSchema, TaskSchema, TaskUpdateSchema
from tasktracker.services.auth.dto import AuthenticatedIdentity
from tasktracker.services.tasks.dto import TaskCreateIn, TaskUpdateIn

bp = Blueprint("tasks", __name__)

task_schema = TaskSchema()
task_list_schema = TaskSchema(many=True)
create_schema = TaskCreateSchema()
update_schema = TaskUpdateSchema()
meta_schema = MetaSchema()


def _page_body(page):
    return {
        "data": task_list_schema.dump(page.items),
        "meta": meta_schema.dump(page.meta.to_dict()),
    }


@bp.get("")
@require_auth
@timing
def list_my_tasks(identity: AuthenticatedIdentity):
    page = call_service(get_task_service().list_for_owner, identity, parse_pagination())
    return json_response(_page_body(page))


@bp.get("/count")
@require_auth
@timing
def count_my_tasks(identity: AuthenticatedIdentity):
    count = call_service(get_task_service().count_for_owner, identity)
    return json_response({"data": {"count": count}})


@bp.get("/all")
@require_role(ADMIN)
@timing
def list_all_tasks(identity: AuthenticatedIdentity):
    page = call_service(get_task_service().list_all, identity, parse_pagination())
    return json_response(_page_body(page))


@bp.get("/<int:task_id>")
@require_auth
@timing
def get_task(task_id: int, identity: AuthenticatedIdentity):
    task = call_service(get_task_service().get, identity, task_id)
    return json_response({"data": task_schema.dump(task)})


@bp.post("")
@require_auth
@timing
def create_task(identity: AuthenticatedIdentity):
    data = create_schema.load(request.get_json(silent=True) or {})
    task = call_service(get_task_service().create, identity, TaskCreateIn(**data))
    return json_response({"data": task_schema.dump(task)}, status=201)


@bp.patch("/<int:task_id>")
@require_auth
@timing
def update_task(task_id: int, identity: AuthenticatedIdentity):
    changes = update_schema.load(request.get_json(silent=True) or {})
    task = call_service(get_task_service().update, identity, task_id, TaskUpdateIn(changes))
    return json_response({"data": task_schema.dump(task)})


@bp.delete("/<int:task_id>")
@require_auth
@timing
def delete_task(task_id: int, identity: AuthenticatedIdentity):
    call_service(get_task_service().delete, identity, task_id)
    return "", 204
