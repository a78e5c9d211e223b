"""
project_access/routes_access.py

Project membership endpoints.

Security guarantees:
- All endpoints require authentication (require_auth_context)
- The caller's project role is resolved from storage on every request
- Grant / revoke decisions are made by the access control engine, which
  enforces role, target, and plan quota rules in one transaction
- Access control errors map to distinct status codes:
  403 Forbidden, 400 InvalidTarget, 422 InvalidRole, 402 QuotaExceeded
  (detail mentions "upgrade"), 503 StorageError
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path, Response

from project_access.access_control import get_collaborator_usage, grant_access, revoke_access
from project_access.auth_context import AuthContext, get_db, require_auth_context
from project_access.db import DB_ERRORS, DBConnection
from project_access.dependencies import (
    ProjectAccessContext,
    load_project,
    require_project_role,
    to_http_exception,
)
from project_access.directory import DbUserDirectory
from project_access.errors import AccessControlError
from project_access.grants import list_shared_project_ids
from project_access.membership import list_members, list_project_grant_candidates
from project_access.models import Project, ProjectRole, UserSummary
from project_access.projects import list_accessible_project_ids
from project_access.roles import role_capabilities
from project_access.schemas_access import (
    CandidatesResponse,
    CollaboratorUsageResponse,
    GrantRequest,
    MemberResponse,
    MembersResponse,
    ProjectRoleResponse,
    SharedProjectsResponse,
    UserSummaryResponse,
)


router = APIRouter(
    prefix="/api/projects",
    tags=["project-access"],
)


@router.get("/shared", response_model=SharedProjectsResponse)
def shared_projects(
    ctx: AuthContext = Depends(require_auth_context),
    conn: DBConnection = Depends(get_db),
) -> SharedProjectsResponse:
    """Ids of projects shared with the caller (owned projects excluded)."""
    try:
        return SharedProjectsResponse(project_ids=list_shared_project_ids(conn, ctx.user_id))
    except AccessControlError as e:
        raise to_http_exception(e)


@router.get("/accessible", response_model=SharedProjectsResponse)
def accessible_projects(
    ctx: AuthContext = Depends(require_auth_context),
    conn: DBConnection = Depends(get_db),
) -> SharedProjectsResponse:
    """Ids of every project the caller can open: owned first, then shared."""
    try:
        return SharedProjectsResponse(project_ids=list_accessible_project_ids(conn, ctx.user_id))
    except AccessControlError as e:
        raise to_http_exception(e)
    except DB_ERRORS as e:
        print(f"[ACCESS] DB error listing projects: user_id={ctx.user_id}, error={type(e).__name__}")
        raise HTTPException(status_code=503, detail="Failed to load projects")


@router.get("/{project_id}/role", response_model=ProjectRoleResponse)
def my_project_role(
    access: ProjectAccessContext = Depends(require_project_role(ProjectRole.viewer)),
) -> ProjectRoleResponse:
    """The caller's role and capability flags, for UI gating."""
    return ProjectRoleResponse(
        project_id=access.project.id,
        role=access.role.value,
        **role_capabilities(access.role),
    )


@router.get("/{project_id}/members", response_model=MembersResponse)
def project_members(
    access: ProjectAccessContext = Depends(require_project_role(ProjectRole.viewer)),
    conn: DBConnection = Depends(get_db),
) -> MembersResponse:
    """Owner and collaborators of a project. Any member may view the list."""
    try:
        view = list_members(conn, access.project, DbUserDirectory(conn))
    except AccessControlError as e:
        raise to_http_exception(e)

    return MembersResponse(
        owner=UserSummaryResponse.from_summary(view.owner),
        members=[MemberResponse.from_grant(grant, user) for grant, user in view.members],
    )


@router.get("/{project_id}/candidates", response_model=CandidatesResponse)
def grant_candidates(
    access: ProjectAccessContext = Depends(require_project_role(ProjectRole.manager)),
    conn: DBConnection = Depends(get_db),
) -> CandidatesResponse:
    """
    Members of the caller's organization who are not on the project yet.

    Falls back to the project's organization when the session has none.
    """
    try:
        candidates = list_project_grant_candidates(
            conn,
            access.project,
            DbUserDirectory(conn),
            organization_id=access.auth.organization_id,
        )
    except AccessControlError as e:
        raise to_http_exception(e)

    return CandidatesResponse(candidates=[UserSummaryResponse.from_summary(u) for u in candidates])


@router.get("/{project_id}/usage", response_model=CollaboratorUsageResponse)
def collaborator_usage(
    access: ProjectAccessContext = Depends(require_project_role(ProjectRole.manager)),
    conn: DBConnection = Depends(get_db),
) -> CollaboratorUsageResponse:
    """Seats used vs. the owner's plan limit."""
    try:
        return CollaboratorUsageResponse(**get_collaborator_usage(conn, access.project))
    except AccessControlError as e:
        raise to_http_exception(e)


@router.put("/{project_id}/members/{user_id}", response_model=MemberResponse)
def grant_member(
    request: GrantRequest,
    user_id: str = Path(..., min_length=1, max_length=100),
    ctx: AuthContext = Depends(require_auth_context),
    project: Project = Depends(load_project),
    conn: DBConnection = Depends(get_db),
) -> MemberResponse:
    """
    Add a member or change their role.

    Raises:
        HTTPException(403): Caller is not owner/manager, or a manager touching the manager role
        HTTPException(400): Target is the owner, the caller, or an unknown user
        HTTPException(422): Role is not viewer/editor/manager
        HTTPException(402): Plan collaborator limit reached (upgrade prompt)
        HTTPException(503): Database error
    """
    directory = DbUserDirectory(conn)
    try:
        # Read before the write: nothing may fail once the grant is committed
        user = directory.get_user(user_id)
        grant = grant_access(conn, project, ctx.user_id, user_id, request.role, directory=directory)
    except AccessControlError as e:
        raise to_http_exception(e)

    return MemberResponse.from_grant(grant, user or UserSummary.unknown(user_id))


@router.delete("/{project_id}/members/{user_id}", status_code=204)
def revoke_member(
    user_id: str = Path(..., min_length=1, max_length=100),
    ctx: AuthContext = Depends(require_auth_context),
    project: Project = Depends(load_project),
    conn: DBConnection = Depends(get_db),
) -> Response:
    """
    Remove a member. Removing someone who is not a member succeeds.

    The UI drops the member row only after this returns 204.
    """
    try:
        revoke_access(conn, project, ctx.user_id, user_id)
    except AccessControlError as e:
        raise to_http_exception(e)

    return Response(status_code=204)
