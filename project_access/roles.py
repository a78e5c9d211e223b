"""
project_access/roles.py

Project role model: the ordered role set and the capabilities each role grants.

Role Hierarchy: owner > manager > editor > viewer > none

Pure Python logic - no FastAPI imports, no database access.
"""

from enum import Enum
from typing import Dict, Optional, Set, Union

from project_access.models import ProjectRole


# ============================================================================
# Capabilities
# ============================================================================

class Capability(str, Enum):
    """Project-scoped capabilities."""
    PROJECT_VIEW = "project:view"
    PROJECT_EDIT = "project:edit"
    MEMBERS_MANAGE = "members:manage"
    PROJECT_DELETE = "project:delete"


ROLE_CAPABILITIES: Dict[ProjectRole, Set[Capability]] = {
    ProjectRole.owner: {
        Capability.PROJECT_VIEW,
        Capability.PROJECT_EDIT,
        Capability.MEMBERS_MANAGE,
        Capability.PROJECT_DELETE,
    },
    ProjectRole.manager: {
        # Everything except deleting the project
        Capability.PROJECT_VIEW,
        Capability.PROJECT_EDIT,
        Capability.MEMBERS_MANAGE,
    },
    ProjectRole.editor: {
        Capability.PROJECT_VIEW,
        Capability.PROJECT_EDIT,
    },
    ProjectRole.viewer: {
        Capability.PROJECT_VIEW,
    },
    ProjectRole.none: set(),
}

# Roles that can be handed out through a grant. Ownership is never granted.
GRANTABLE_ROLES = frozenset({ProjectRole.viewer, ProjectRole.editor, ProjectRole.manager})


# ============================================================================
# Role Hierarchy
# ============================================================================

ROLE_HIERARCHY: Dict[ProjectRole, int] = {
    ProjectRole.none: 0,
    ProjectRole.viewer: 1,
    ProjectRole.editor: 2,
    ProjectRole.manager: 3,
    ProjectRole.owner: 4,
}


def parse_role(value: Union[str, ProjectRole, None]) -> Optional[ProjectRole]:
    """
    Turn a loosely-typed role value into a ProjectRole.

    Returns None for anything that is not a known role name.
    """
    if isinstance(value, ProjectRole):
        return value
    if not value:
        return None
    try:
        return ProjectRole(str(value).strip().lower())
    except ValueError:
        return None


def role_level(role: Union[str, ProjectRole, None]) -> int:
    """
    Get numeric level for a role.

    Returns:
        Numeric level (higher = more privileged), 0 if unknown
    """
    parsed = parse_role(role)
    if parsed is None:
        return 0
    return ROLE_HIERARCHY[parsed]


def role_at_least(user_role: Union[str, ProjectRole, None], required_role: Union[str, ProjectRole]) -> bool:
    """
    Check if user_role meets or exceeds required_role in hierarchy.

    Example:
        role_at_least("manager", "editor") -> True
        role_at_least("viewer", "editor") -> False
    """
    return role_level(user_role) >= role_level(required_role)


# ============================================================================
# Capability checks
# ============================================================================

def has_capability(role: Union[str, ProjectRole, None], capability: Capability) -> bool:
    parsed = parse_role(role)
    if parsed is None:
        return False
    return capability in ROLE_CAPABILITIES[parsed]


def can_view(role: Union[str, ProjectRole, None]) -> bool:
    return has_capability(role, Capability.PROJECT_VIEW)


def can_edit(role: Union[str, ProjectRole, None]) -> bool:
    return has_capability(role, Capability.PROJECT_EDIT)


def can_manage_members(role: Union[str, ProjectRole, None]) -> bool:
    return has_capability(role, Capability.MEMBERS_MANAGE)


def can_delete_project(role: Union[str, ProjectRole, None]) -> bool:
    return has_capability(role, Capability.PROJECT_DELETE)


def role_capabilities(role: Union[str, ProjectRole, None]) -> Dict[str, bool]:
    """
    Capability flags for UI gating (e.g. hide the member picker for editors).
    """
    return {
        "can_view": can_view(role),
        "can_edit": can_edit(role),
        "can_manage_members": can_manage_members(role),
        "can_delete_project": can_delete_project(role),
    }
