"""
project_access/dependencies.py

Reusable FastAPI dependencies for project-scoped authorization.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, HTTPException, Path

from project_access.access_control import require_project_access
from project_access.auth_context import AuthContext, get_db, require_auth_context
from project_access.config import IS_DEV
from project_access.db import DB_ERRORS, DBConnection
from project_access.errors import AccessControlError
from project_access.models import Project, ProjectRole
from project_access.projects import get_project


def to_http_exception(error: AccessControlError) -> HTTPException:
    """Map an access control error to the HTTP response the UI expects."""
    return HTTPException(status_code=error.status_code, detail=error.detail)


def load_project(
    project_id: str = Path(..., min_length=1, max_length=100),
    conn: DBConnection = Depends(get_db),
) -> Project:
    """
    Resolve the project named in the path.

    Raises:
        HTTPException(404): Unknown project
        HTTPException(503): Database error
    """
    try:
        project = get_project(conn, project_id)
    except DB_ERRORS as e:
        print(f"[ACCESS] DB error loading project_id={project_id}: {type(e).__name__}")
        raise HTTPException(status_code=503, detail="Failed to load project")

    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@dataclass(frozen=True)
class ProjectAccessContext:
    """An authenticated caller together with their resolved role on one project."""
    auth: AuthContext
    project: Project
    role: ProjectRole


def require_project_role(min_role: ProjectRole) -> Callable:
    """
    FastAPI dependency factory enforcing a minimum role on the path's project.

    The role is resolved from storage on every request.

    Usage in routes:
        @router.get("/{project_id}/members")
        def members(access: ProjectAccessContext = Depends(require_project_role(ProjectRole.viewer))):
            ...

    Raises:
        HTTPException(403): No access or insufficient role
    """
    def _check_role(
        ctx: AuthContext = Depends(require_auth_context),
        project: Project = Depends(load_project),
        conn: DBConnection = Depends(get_db),
    ) -> ProjectAccessContext:
        try:
            role = require_project_access(conn, project, ctx.user_id, min_role)
        except AccessControlError as e:
            raise to_http_exception(e)

        if IS_DEV:
            print(f"[AUTHZ] Project role granted: project_id={project.id}, user_id={ctx.user_id}, "
                  f"role={role.value}, required={min_role.value}")

        return ProjectAccessContext(auth=ctx, project=project, role=role)

    return _check_role
