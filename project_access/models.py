from dataclasses import dataclass
from enum import Enum
from typing import Optional


# Enums
class ProjectRole(str, Enum):
    """
    Role a user holds on one project.

    NONE is the "no access" sentinel and ranks below viewer. Ordering lives in
    roles.ROLE_HIERARCHY; never compare role values as strings.
    """
    none = "none"
    viewer = "viewer"
    editor = "editor"
    manager = "manager"
    owner = "owner"


class PlanName(str, Enum):
    free = "free"
    pro = "pro"
    team = "team"


# Records
@dataclass(frozen=True)
class Project:
    """
    The fields of a project row this package reads.

    owner_plan is the owner's effective subscription plan, resolved by the
    project repository and passed in so access checks never look it up.
    """
    id: str
    owner_id: str
    organization_id: Optional[str] = None
    owner_plan: str = PlanName.free.value


@dataclass(frozen=True)
class AccessGrant:
    """A non-owner collaborator's role on a project."""
    project_id: str
    user_id: str
    role: ProjectRole
    granted_at: str
    granted_by: Optional[str] = None


@dataclass(frozen=True)
class UserSummary:
    id: str
    name: str
    email: str = ""
    image_url: str = ""

    @classmethod
    def unknown(cls, user_id: str) -> "UserSummary":
        """Placeholder for a user the directory no longer knows about."""
        return cls(id=user_id, name="Unknown")
