"""
project_access/access_control.py

Access control engine: the single authorization decision point for projects.

Every project read or write calls resolve_role / require_project_access
first. Roles are resolved from storage on every call and never cached, so a
revocation takes effect on the target's very next request.

grant_access and revoke_access run their checks and their write inside one
project_write_lock transaction: two concurrent grants cannot both pass the
quota check against the same count, and a failed call leaves the store
exactly as it was.

Check order for grant_access (first failure wins):
    1. actor is owner or manager               -> Forbidden
    2. target is not the owner                 -> InvalidTarget
       target is not the actor, and exists     -> InvalidTarget
    3. role is viewer / editor / manager       -> InvalidRole
    4. managers cannot hand out or change the
       manager role                            -> Forbidden
    5. new seat fits the owner's plan quota    -> QuotaExceeded
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Union

from project_access.config import IS_DEV
from project_access.db import DB_ERRORS, DBConnection, project_write_lock
from project_access.directory import UserDirectory
from project_access.errors import (
    Forbidden,
    InvalidRole,
    InvalidTarget,
    QuotaExceeded,
    StorageError,
)
from project_access.grants import (
    count_grants_by_project,
    delete_grant,
    delete_grants_by_project,
    find_grant,
    upsert_grant,
)
from project_access.models import AccessGrant, Project, ProjectRole
from project_access.quotas import collaborator_usage, max_collaborators, normalize_plan
from project_access.roles import (
    GRANTABLE_ROLES,
    can_delete_project,
    can_manage_members,
    parse_role,
    role_at_least,
)


def _storage_failure(error: Exception, detail: str, operation: str, project: Project, actor_user_id: Optional[str]) -> StorageError:
    """
    The StorageError for a failed grant/revoke, carrying the operation-level
    detail the UI shows whichever store call failed.
    """
    print(f"[ACCESS] Storage failure: operation={operation}, project_id={project.id}, "
          f"actor_id={actor_user_id}, error={type(error).__name__}")
    return StorageError(detail, operation=operation, project_id=project.id, actor_id=actor_user_id)


# ============================================================================
# Role Resolution
# ============================================================================

def resolve_role(conn: DBConnection, project: Project, actor_user_id: Optional[str]) -> ProjectRole:
    """
    Resolve the actor's role on a project.

    - The project owner is always "owner", whatever grant rows exist for them
    - Otherwise the role of their grant
    - Otherwise ProjectRole.none (no access; never treat as viewer)
    """
    if not actor_user_id:
        return ProjectRole.none

    if actor_user_id == project.owner_id:
        return ProjectRole.owner

    grant = find_grant(conn, project.id, actor_user_id)
    if grant is None:
        return ProjectRole.none

    return grant.role


def require_project_access(
    conn: DBConnection,
    project: Project,
    actor_user_id: Optional[str],
    min_role: Union[str, ProjectRole] = ProjectRole.viewer,
) -> ProjectRole:
    """
    Require a minimum role on a project.

    Returns:
        The actor's resolved role

    Raises:
        Forbidden: "Access denied" without any access,
            "Insufficient permissions" when below min_role
    """
    role = resolve_role(conn, project, actor_user_id)

    if role == ProjectRole.none:
        print(f"[AUTHZ] No project access: project_id={project.id}, user_id={actor_user_id}")
        raise Forbidden("Access denied")

    if not role_at_least(role, min_role):
        print(f"[AUTHZ] Insufficient project role: project_id={project.id}, user_id={actor_user_id}, "
              f"role={role.value}, required={getattr(min_role, 'value', min_role)}")
        raise Forbidden("Insufficient permissions")

    return role


def can_access_project(conn: DBConnection, project: Project, actor_user_id: Optional[str]) -> bool:
    return resolve_role(conn, project, actor_user_id) != ProjectRole.none


# ============================================================================
# Grant / Revoke
# ============================================================================

def grant_access(
    conn: DBConnection,
    project: Project,
    actor_user_id: str,
    target_user_id: str,
    role: Union[str, ProjectRole],
    directory: Optional[UserDirectory] = None,
) -> AccessGrant:
    """
    Give target_user_id `role` on the project, or change their existing role.

    Changing an existing collaborator's role does not use a new seat, so the
    quota check only applies to users without a grant.

    Args:
        directory: when given, the target must be a known user

    Raises:
        Forbidden, InvalidTarget, InvalidRole, QuotaExceeded, StorageError
    """
    try:
        with project_write_lock(conn, project.id):
            actor_role = resolve_role(conn, project, actor_user_id)
            if not can_manage_members(actor_role):
                print(f"[ACCESS] Grant denied: project_id={project.id}, actor_id={actor_user_id}, "
                      f"actor_role={actor_role.value}")
                raise Forbidden("Insufficient permissions - only the owner or a manager can add team members")

            if target_user_id == project.owner_id:
                raise InvalidTarget("User is already the project owner")
            if not target_user_id:
                raise InvalidTarget("A user to add is required")
            if target_user_id == actor_user_id:
                raise InvalidTarget("Cannot grant access to yourself")
            if directory is not None and directory.get_user(target_user_id) is None:
                raise InvalidTarget("User not found")

            requested = parse_role(role)
            if requested not in GRANTABLE_ROLES:
                raise InvalidRole(f"Invalid role '{role}' - choose viewer, editor or manager")

            existing = find_grant(conn, project.id, target_user_id)

            if actor_role == ProjectRole.manager and (
                requested == ProjectRole.manager
                or (existing is not None and existing.role == ProjectRole.manager)
            ):
                print(f"[ACCESS] Manager escalation denied: project_id={project.id}, "
                      f"actor_id={actor_user_id}, target_id={target_user_id}")
                raise Forbidden("Only the project owner can assign or change the manager role")

            if existing is None:
                current = count_grants_by_project(conn, project.id)
                limit = max_collaborators(project.owner_plan)
                if current + 1 > limit:
                    plan = normalize_plan(project.owner_plan)
                    print(f"[ACCESS] Collaborator quota exceeded: project_id={project.id}, "
                          f"plan={plan}, current={current}, max={limit}")
                    raise QuotaExceeded(plan=plan, limit=limit, current=current)

            grant = upsert_grant(conn, project.id, target_user_id, requested, granted_by=actor_user_id)
    except StorageError as e:
        raise _storage_failure(e, "Failed to add team member", "grant", project, actor_user_id) from e.__cause__
    except DB_ERRORS as e:
        raise _storage_failure(e, "Failed to add team member", "grant", project, actor_user_id) from e

    if IS_DEV:
        print(f"[ACCESS] Granted: project_id={project.id}, target_id={target_user_id}, "
              f"role={grant.role.value}, actor_id={actor_user_id}, actor_role={actor_role.value}")

    return grant


def revoke_access(
    conn: DBConnection,
    project: Project,
    actor_user_id: str,
    target_user_id: str,
) -> None:
    """
    Remove target_user_id's grant. Revoking a user without a grant succeeds.

    Managers may remove viewers and editors; only the owner may remove a
    manager. The owner can never be removed.

    Raises:
        Forbidden, InvalidTarget, StorageError
    """
    try:
        with project_write_lock(conn, project.id):
            actor_role = resolve_role(conn, project, actor_user_id)
            if not can_manage_members(actor_role):
                print(f"[ACCESS] Revoke denied: project_id={project.id}, actor_id={actor_user_id}, "
                      f"actor_role={actor_role.value}")
                raise Forbidden("Insufficient permissions - only the owner or a manager can remove team members")

            if target_user_id == project.owner_id:
                raise InvalidTarget("The project owner cannot be removed")
            if not target_user_id:
                raise InvalidTarget("A user to remove is required")

            existing = find_grant(conn, project.id, target_user_id)
            if existing is None:
                if IS_DEV:
                    print(f"[ACCESS] Revoke no-op (no grant): project_id={project.id}, target_id={target_user_id}")
                return

            if actor_role == ProjectRole.manager and existing.role == ProjectRole.manager:
                print(f"[ACCESS] Manager removal denied: project_id={project.id}, "
                      f"actor_id={actor_user_id}, target_id={target_user_id}")
                raise Forbidden("Only the project owner can remove a manager")

            delete_grant(conn, project.id, target_user_id)
    except StorageError as e:
        raise _storage_failure(e, "Failed to remove team member", "revoke", project, actor_user_id) from e.__cause__
    except DB_ERRORS as e:
        raise _storage_failure(e, "Failed to remove team member", "revoke", project, actor_user_id) from e

    if IS_DEV:
        print(f"[ACCESS] Revoked: project_id={project.id}, target_id={target_user_id}, actor_id={actor_user_id}")


def remove_project_grants(conn: DBConnection, project: Project, actor_user_id: str) -> int:
    """
    Drop every grant of a project that is being deleted. Owner only.

    Returns:
        Number of grants removed
    """
    try:
        with project_write_lock(conn, project.id):
            actor_role = resolve_role(conn, project, actor_user_id)
            if not can_delete_project(actor_role):
                print(f"[ACCESS] Project deletion denied: project_id={project.id}, actor_id={actor_user_id}")
                raise Forbidden("Only the project owner can delete this project")
            removed = delete_grants_by_project(conn, project.id)
    except StorageError as e:
        raise _storage_failure(e, "Failed to remove team member", "remove_project_grants", project, actor_user_id) from e.__cause__
    except DB_ERRORS as e:
        raise _storage_failure(e, "Failed to remove team member", "remove_project_grants", project, actor_user_id) from e

    if IS_DEV:
        print(f"[ACCESS] Removed {removed} grant(s) of deleted project_id={project.id}")

    return removed


# ============================================================================
# Quota reporting
# ============================================================================

def get_collaborator_usage(conn: DBConnection, project: Project) -> Dict[str, Any]:
    """Current seats vs. the owner's plan limit, for the upgrade prompt."""
    try:
        current = count_grants_by_project(conn, project.id)
    except StorageError as e:
        e.project_id = project.id
        raise
    return collaborator_usage(project.owner_plan, current)
