"""Permission model for AgencyFlow RBAC.

Permissions are the closed product of resources and actions.

Permission string format: "resource:action"
Examples:
  - campaigns:transition
  - deliverables:upload
  - client_review:approve
  - analytics:fetch
"""

from enum import Enum
from typing import NamedTuple, FrozenSet


class Resource(str, Enum):
    """Resources that can be protected by permissions."""

    # Tenant
    AGENCY = "agency"                   # Agency settings and token balance
    MEMBERS = "members"                 # Agency memberships and roles
    EMAIL_CONFIG = "email_config"       # Agency SMTP configuration

    # Work hierarchy
    CLIENTS = "clients"
    PROJECTS = "projects"
    CAMPAIGNS = "campaigns"
    DELIVERABLES = "deliverables"

    # Approval tiers
    INTERNAL_REVIEW = "internal_review"  # Campaign-tier decisions
    PROJECT_REVIEW = "project_review"    # Project-tier decisions
    CLIENT_REVIEW = "client_review"      # Client-tier decisions

    # Creators and money
    CREATORS = "creators"
    ANALYTICS = "analytics"             # Credit-metered data fetches
    PAYMENTS = "payments"

    ACTIVITY_LOGS = "activity_logs"


class Action(str, Enum):
    """Actions that can be performed on resources."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    MANAGE = "manage"           # Structural changes (approver rosters, archiving)
    ASSIGN = "assign"           # Assign users to a scope
    TRANSITION = "transition"   # Drive a lifecycle transition
    UPLOAD = "upload"           # Upload deliverable versions
    APPROVE = "approve"         # Record approval decisions
    FETCH = "fetch"             # Spend credits on external data
    CONFIGURE = "configure"     # Tenant configuration


class Permission(NamedTuple):
    """A permission is a combination of resource and action."""
    resource: Resource
    action: Action

    def __str__(self) -> str:
        return f"{self.resource.value}:{self.action.value}"

    @classmethod
    def from_string(cls, perm_str: str) -> "Permission":
        """Parse a permission string like 'campaigns:read'."""
        parts = perm_str.split(":")
        if len(parts) != 2:
            raise ValueError(f"Invalid permission format: {perm_str}")
        return cls(Resource(parts[0]), Action(parts[1]))


# Maps each resource to its valid actions
PERMISSION_MATRIX: dict[Resource, FrozenSet[Action]] = {
    Resource.AGENCY: frozenset([Action.READ, Action.UPDATE, Action.MANAGE]),
    Resource.MEMBERS: frozenset([Action.READ, Action.MANAGE]),
    Resource.EMAIL_CONFIG: frozenset([Action.READ, Action.CONFIGURE]),
    Resource.CLIENTS: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.MANAGE,
    ]),
    Resource.PROJECTS: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.MANAGE, Action.ASSIGN,
    ]),
    Resource.CAMPAIGNS: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.TRANSITION, Action.ASSIGN,
    ]),
    Resource.DELIVERABLES: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE, Action.UPLOAD,
    ]),
    Resource.INTERNAL_REVIEW: frozenset([Action.READ, Action.APPROVE]),
    Resource.PROJECT_REVIEW: frozenset([Action.READ, Action.APPROVE]),
    Resource.CLIENT_REVIEW: frozenset([Action.READ, Action.APPROVE]),
    Resource.CREATORS: frozenset([Action.CREATE, Action.READ, Action.UPDATE, Action.ASSIGN]),
    Resource.ANALYTICS: frozenset([Action.READ, Action.FETCH]),
    Resource.PAYMENTS: frozenset([Action.CREATE, Action.READ, Action.UPDATE]),
    Resource.ACTIVITY_LOGS: frozenset([Action.READ]),
}


def _generate_permission_definitions() -> dict[str, Permission]:
    """Generate all valid permission combinations from the matrix."""
    permissions = {}
    for resource, actions in PERMISSION_MATRIX.items():
        for action in actions:
            perm = Permission(resource, action)
            permissions[str(perm)] = perm
    return permissions


# All valid permissions as a dictionary: "resource:action" -> Permission
PERMISSION_DEFINITIONS = _generate_permission_definitions()

READONLY_ACTIONS = frozenset([Action.READ])


def is_valid_permission(perm_str: str) -> bool:
    """Check if a permission string is valid."""
    return perm_str in PERMISSION_DEFINITIONS


def get_permissions_for_resource(resource: Resource) -> list[str]:
    return [
        str(Permission(resource, action))
        for action in PERMISSION_MATRIX.get(resource, set())
    ]
