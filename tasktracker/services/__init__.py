"""Service layer.

Subpackages
-----------
- ``_shared``: base service, pagination DTOs, domain errors and ports
  (token codec, refresh token store, user directory).
- ``auth``: :class:`~tasktracker.services.auth.service.SessionService` and the
  access token revocation registry.
- ``tasks``: :class:`~tasktracker.services.tasks.service.TaskService`.

Import from the concrete modules; infra adapters depend on ``_shared`` so this
package does not re-export anything eagerly.
"""
