"""
project_access/schemas_access.py

Pydantic schemas for the project access API.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, validator

from project_access.models import AccessGrant, UserSummary


# ========================================================================
# REQUEST SCHEMAS
# ========================================================================

class GrantRequest(BaseModel):
    """Request schema for adding a member or changing their role.

    role is validated by the access control engine (viewer, editor, manager)
    so an "owner" request gets the engine's InvalidRole answer.
    """
    role: str = Field(..., min_length=1, max_length=20, description="viewer, editor or manager")

    @validator("role", pre=True)
    def normalize_role(cls, v):
        """Trim and lowercase the role name."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


# ========================================================================
# RESPONSE SCHEMAS
# ========================================================================

class UserSummaryResponse(BaseModel):
    id: str
    name: str
    email: str = ""
    image_url: str = ""

    @classmethod
    def from_summary(cls, user: UserSummary) -> "UserSummaryResponse":
        return cls(id=user.id, name=user.name, email=user.email, image_url=user.image_url)


class MemberResponse(BaseModel):
    """One collaborator row in the member list."""
    user_id: str
    role: str
    granted_at: str
    granted_by: Optional[str] = None
    user: UserSummaryResponse

    @classmethod
    def from_grant(cls, grant: AccessGrant, user: UserSummary) -> "MemberResponse":
        return cls(
            user_id=grant.user_id,
            role=grant.role.value,
            granted_at=grant.granted_at,
            granted_by=grant.granted_by,
            user=UserSummaryResponse.from_summary(user),
        )


class MembersResponse(BaseModel):
    owner: UserSummaryResponse
    members: List[MemberResponse] = Field(default_factory=list)


class CandidatesResponse(BaseModel):
    """Organization members who can still be added to the project."""
    candidates: List[UserSummaryResponse] = Field(default_factory=list)


class ProjectRoleResponse(BaseModel):
    """The caller's role on a project and what it lets them do."""
    project_id: str
    role: str
    can_view: bool
    can_edit: bool
    can_manage_members: bool
    can_delete_project: bool


class CollaboratorUsageResponse(BaseModel):
    plan: str
    current: int
    limit: int
    allowed: bool


class SharedProjectsResponse(BaseModel):
    project_ids: List[str] = Field(default_factory=list)
