"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Response, current_app, jsonify, request

from tasktracker.core.errors import Forbidden, Unauthorized
from tasktracker.schemas.common import PaginationQuerySchema
from tasktracker.services._shared.base import BaseService
from tasktracker.services._shared.dto import PaginationIn
from tasktracker.services._shared.errors import ServiceError
from tasktracker.services.auth.service import SessionService
from tasktracker.services.tasks.service import TaskService
from tasktracker.services.users.service import UserService

F = TypeVar("F", bound=Callable[..., Any])

SESSION_SERVICE_KEY = "session_service"
TASK_SERVICE_KEY = "task_service"
USER_SERVICE_KEY = "user_service"


def get_session_service() -> SessionService:
    """Return the :class:`SessionService` wired by the application factory."""
    return cast(SessionService, current_app.extensions[SESSION_SERVICE_KEY])


def get_task_service() -> TaskService:
    return cast(TaskService, current_app.extensions[TASK_SERVICE_KEY])


def get_user_service() -> UserService:
    return cast(UserService, current_app.extensions[USER_SERVICE_KEY])


def parse_pagination() -> PaginationIn:
    """Parse ``page``/``limit`` from ``request.args`` using Marshmallow."""
    data = PaginationQuerySchema().load(request.args)
    return PaginationIn(page=data["page"], limit=data["limit"])


def bearer_token() -> str:
    """
    Extract the token from ``Authorization: Bearer <token>``.

    :raises Unauthorized: When the header is missing or not a bearer credential.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Missing bearer token")
    return token.strip()


def call_service(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Invoke a service method, translating service errors into API errors."""
    try:
        return fn(*args, **kwargs)
    except ServiceError as exc:
        raise BaseService.translate_exceptions(exc) from exc


def require_auth(func: F) -> F:
    """
    Run the verification gate and pass the result as ``identity=``.

    The identity is an explicit argument of the view; nothing is stored in
    request-global state.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token = bearer_token()
        kwargs["identity"] = call_service(get_session_service().authenticate, token)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def require_role(role: str) -> Callable[[F], F]:
    """Like :func:`require_auth`, additionally demanding ``role``."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            identity = kwargs.get("identity")
            if identity is None or not identity.has_role(role):
                raise Forbidden(f"{role} role required")
            return func(*args, **kwargs)

        return require_auth(wrapper)  # type: ignore[return-value]

    return decorator


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""
    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
