from __future__ import annotations

from tasktracker.core import errors as api_errors
from tasktracker.core.clock import Clock, SystemClock
from tasktracker.repositories.base import Pagination
from tasktracker.services._shared.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    InvalidTokenError,
    NotFoundError,
    ServiceError,
    SessionExpiredError,
    StoreUnavailableError,
)
from tasktracker.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

MAX_PAGE_SIZE = 50


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Own the injected clock, so every service reads time the same way.
    * Centralize translation of service errors into API errors.

    Notes
    -----
    Services never touch the global session directly; they go through a
    Unit of Work.
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        self.clock: Clock = clock or SystemClock()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        return SQLAlchemyReadOnlyUnitOfWork()

    # ----------------------- Validation utilities ---------------------------

    def ensure_pagination(self, *, page: int, limit: int, sort: list[str] | None = None) -> Pagination:
        """
        Build a :class:`Pagination` clamped to ``1 <= limit <= MAX_PAGE_SIZE``.

        :param page: 1-based page number.
        :param limit: Page size.
        :param sort: Sort tokens like ``["-due_date"]``.
        """
        page = max(1, int(page))
        limit = min(max(1, int(limit)), MAX_PAGE_SIZE)
        return Pagination(page=page, limit=limit, sort=list(sort or []))

    # -------------------------- Error handling ------------------------------

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :returns: Translated exception ready to be re-raised.
        """
        if isinstance(exc, SessionExpiredError):
            return api_errors.Unauthorized(str(exc), code="session_expired")

        if isinstance(exc, InvalidTokenError):
            # Same body for every reason; the reason is only logged.
            return api_errors.Unauthorized(InvalidTokenError.PUBLIC_MESSAGE)

        if isinstance(exc, AuthenticationError):
            return api_errors.Unauthorized(str(exc))

        if isinstance(exc, AuthorizationError):
            return api_errors.Forbidden(str(exc) or "Forbidden")

        if isinstance(exc, StoreUnavailableError):
            return api_errors.ServiceUnavailable(str(exc))

        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        if isinstance(exc, ServiceError):
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")

        return exc
