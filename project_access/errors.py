"""
project_access/errors.py

Error taxonomy for project access control.

Every error carries the HTTP status code and user-facing detail the API layer
returns, so callers can tell the kinds apart without parsing messages. The
UI shows an upgrade call-to-action for any detail containing "upgrade".
"""

from __future__ import annotations

from typing import Optional


class AccessControlError(Exception):
    """Base class for all access control failures."""
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class Forbidden(AccessControlError):
    """Actor lacks the role required for the operation."""
    status_code = 403


class InvalidTarget(AccessControlError):
    """Operation targets the owner, the actor themself, or an unknown user."""
    status_code = 400


class InvalidRole(AccessControlError):
    """Requested role is not grantable (viewer, editor, manager)."""
    status_code = 422


class QuotaExceeded(AccessControlError):
    """The owner's plan has no collaborator seat left."""
    status_code = 402  # Payment Required

    def __init__(self, plan: str, limit: int, current: Optional[int] = None):
        self.plan = plan
        self.limit = limit
        self.current = current
        if limit == 0:
            detail = f"Collaborators are not available on the {plan} plan. Please upgrade to add team members."
        else:
            detail = (
                f"Collaborator limit reached: {limit} per project on the {plan} plan. "
                f"Please upgrade to add more team members."
            )
        super().__init__(detail)


class StorageError(AccessControlError):
    """
    Persistence failure (including transient connectivity or lock timeouts).

    Safe to retry at the caller's discretion; never retried here. Raised
    `from` the driver exception, which stays available as __cause__.
    """
    status_code = 503

    def __init__(
        self,
        detail: str,
        *,
        operation: str,
        project_id: Optional[str] = None,
        actor_id: Optional[str] = None,
    ):
        super().__init__(detail)
        self.operation = operation
        self.project_id = project_id
        self.actor_id = actor_id
