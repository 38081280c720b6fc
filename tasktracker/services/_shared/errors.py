"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. They are the stable contract between stores, the authentication core
and application services.

The translation to HTTP responses (RFC 7807) is handled by
``tasktracker/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer translates them to ``APIError`` subclasses.
    """


# --------------------------------------------------------------------------- #
# Authentication
# --------------------------------------------------------------------------- #


class AuthenticationError(ServiceError):
    """Base class for every failure that must surface as 401."""


class InvalidCredentialsError(AuthenticationError):
    """Raised when the User Directory rejects a login attempt."""

    def __init__(self, message: str = "Invalid username or password.") -> None:
        super().__init__(message)


class InvalidTokenError(AuthenticationError):
    """
    Raised for malformed, forged, expired, revoked or unknown tokens.

    The client-facing message is always the same; ``reason`` exists only for
    logs so callers cannot learn which check failed.

    :param reason: Internal rejection reason (``"signature"``, ``"expired"``,
        ``"revoked"``, ``"refresh_mismatch"``...).
    """

    PUBLIC_MESSAGE = "Invalid token."

    def __init__(self, reason: str = "invalid") -> None:
        super().__init__(self.PUBLIC_MESSAGE)
        self.reason = reason


class SessionExpiredError(AuthenticationError):
    """Raised when the refresh token reached its natural expiry."""

    def __init__(self, message: str = "Session expired, log in again.") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Infrastructure
# --------------------------------------------------------------------------- #


class StoreUnavailableError(ServiceError):
    """
    Raised when the durable refresh-token store cannot be reached.

    Fatal to login/refresh: a session is never established without durable
    rotation state.
    """

    def __init__(self, message: str = "Session store unavailable.") -> None:
        super().__init__(message)


class CacheUnavailableError(ServiceError):
    """Raised by strict cache lookups; never escapes to callers of the core."""


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


class AuthorizationError(ServiceError):
    """Raised when the authenticated identity lacks the required role or ownership."""


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "Task").
    :param key: Identifier or search key.
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :param detail: Short human-readable explanation.
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"
