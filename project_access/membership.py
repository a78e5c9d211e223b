"""
project_access/membership.py

Project membership view: read-only snapshots for rendering member lists.

- list_members: owner + every grant with the user's profile
- list_grant_candidates: organization members who could still be added

Pure reads over the grant store and the user directory; callers check the
actor's role (viewer for members, manager for candidates) before calling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from project_access.db import DBConnection
from project_access.directory import UserDirectory
from project_access.grants import list_grants_by_project
from project_access.models import AccessGrant, Project, UserSummary


@dataclass
class ProjectMembers:
    owner: UserSummary
    members: List[Tuple[AccessGrant, UserSummary]] = field(default_factory=list)


def list_members(conn: DBConnection, project: Project, directory: UserDirectory) -> ProjectMembers:
    """
    Owner and collaborators of a project, collaborators oldest grant first.

    Users the directory cannot resolve are shown as "Unknown" rather than
    dropped, so a stale grant can still be revoked from the list.
    """
    grants = list_grants_by_project(conn, project.id)
    users = directory.get_users([project.owner_id] + [g.user_id for g in grants])

    owner = users.get(project.owner_id) or UserSummary.unknown(project.owner_id)
    members = [(g, users.get(g.user_id) or UserSummary.unknown(g.user_id)) for g in grants]

    return ProjectMembers(owner=owner, members=members)


def list_grant_candidates(
    conn: DBConnection,
    project: Project,
    org_members: Optional[Iterable[UserSummary]],
) -> List[UserSummary]:
    """
    Organization members minus the owner and current grant holders.

    Keeps the order the organization directory returned.
    """
    if not org_members:
        return []

    excluded = {project.owner_id}
    excluded.update(g.user_id for g in list_grants_by_project(conn, project.id))

    return [user for user in org_members if user.id and user.id not in excluded]


def list_project_grant_candidates(
    conn: DBConnection,
    project: Project,
    directory: UserDirectory,
    organization_id: Optional[str] = None,
) -> List[UserSummary]:
    """
    Grant candidates from the project's organization (or `organization_id`,
    typically the actor's active organization).
    """
    org_id = organization_id or project.organization_id
    if not org_id:
        return []
    return list_grant_candidates(conn, project, directory.list_organization_members(org_id))
