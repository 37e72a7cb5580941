"""Role definitions for AgencyFlow.

Three closed role families, each with an explicit permission list:

Agency roles (AgencyMembership.role):
1. agency_admin - Full access across the agency
2. account_manager - Opens clients and manages the ones they own, end to end
3. operator - Runs campaigns they are assigned to
4. internal_approver - Reviews deliverables at the campaign tier

Campaign roles (CampaignUser.role): operator, approver, viewer.

Client roles (client-portal contacts): approver, viewer.
"""

from enum import Enum
from typing import Dict, List

from .permissions import Resource, Action, Permission


class AgencyRole(str, Enum):
    AGENCY_ADMIN = "agency_admin"
    ACCOUNT_MANAGER = "account_manager"
    OPERATOR = "operator"
    INTERNAL_APPROVER = "internal_approver"


class CampaignRole(str, Enum):
    OPERATOR = "operator"
    APPROVER = "approver"
    VIEWER = "viewer"


class ClientRole(str, Enum):
    APPROVER = "approver"
    VIEWER = "viewer"


def _build_permissions(*perms: tuple) -> List[str]:
    """Build permission strings from (Resource, Action) tuples."""
    return [str(Permission(r, a)) for r, a in perms]


# Admin: Full access to everything in the agency
AGENCY_ADMIN_PERMISSIONS = [
    "*:*"
]

# Account manager: full control over owned clients and everything beneath them
ACCOUNT_MANAGER_PERMISSIONS = _build_permissions(
    (Resource.AGENCY, Action.READ),
    (Resource.MEMBERS, Action.READ),

    (Resource.CLIENTS, Action.CREATE),
    (Resource.CLIENTS, Action.READ),
    (Resource.CLIENTS, Action.UPDATE),
    (Resource.CLIENTS, Action.MANAGE),

    (Resource.PROJECTS, Action.CREATE),
    (Resource.PROJECTS, Action.READ),
    (Resource.PROJECTS, Action.UPDATE),
    (Resource.PROJECTS, Action.MANAGE),
    (Resource.PROJECTS, Action.ASSIGN),

    (Resource.CAMPAIGNS, Action.CREATE),
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.CAMPAIGNS, Action.UPDATE),
    (Resource.CAMPAIGNS, Action.TRANSITION),
    (Resource.CAMPAIGNS, Action.ASSIGN),

    (Resource.DELIVERABLES, Action.CREATE),
    (Resource.DELIVERABLES, Action.READ),
    (Resource.DELIVERABLES, Action.UPDATE),
    (Resource.DELIVERABLES, Action.DELETE),
    (Resource.DELIVERABLES, Action.UPLOAD),

    (Resource.INTERNAL_REVIEW, Action.READ),
    (Resource.INTERNAL_REVIEW, Action.APPROVE),
    (Resource.PROJECT_REVIEW, Action.READ),
    (Resource.PROJECT_REVIEW, Action.APPROVE),
    (Resource.CLIENT_REVIEW, Action.READ),

    (Resource.CREATORS, Action.CREATE),
    (Resource.CREATORS, Action.READ),
    (Resource.CREATORS, Action.UPDATE),
    (Resource.CREATORS, Action.ASSIGN),

    (Resource.ANALYTICS, Action.READ),
    (Resource.ANALYTICS, Action.FETCH),

    (Resource.PAYMENTS, Action.CREATE),
    (Resource.PAYMENTS, Action.READ),
    (Resource.PAYMENTS, Action.UPDATE),

    (Resource.ACTIVITY_LOGS, Action.READ),
)

# Operator: agency-wide creator roster work; campaign work comes from assignments
OPERATOR_PERMISSIONS = _build_permissions(
    (Resource.AGENCY, Action.READ),
    (Resource.CLIENTS, Action.READ),
    (Resource.PROJECTS, Action.READ),
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.DELIVERABLES, Action.READ),

    (Resource.CREATORS, Action.CREATE),
    (Resource.CREATORS, Action.READ),
    (Resource.CREATORS, Action.UPDATE),

    (Resource.ANALYTICS, Action.READ),
    (Resource.ANALYTICS, Action.FETCH),
)

# Internal approver: read across the agency, decide at the campaign tier
INTERNAL_APPROVER_PERMISSIONS = _build_permissions(
    (Resource.AGENCY, Action.READ),
    (Resource.CLIENTS, Action.READ),
    (Resource.PROJECTS, Action.READ),
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.DELIVERABLES, Action.READ),

    (Resource.INTERNAL_REVIEW, Action.READ),
    (Resource.INTERNAL_REVIEW, Action.APPROVE),

    (Resource.CREATORS, Action.READ),
    (Resource.ANALYTICS, Action.READ),
)

AGENCY_ROLE_PERMISSIONS: Dict[AgencyRole, List[str]] = {
    AgencyRole.AGENCY_ADMIN: AGENCY_ADMIN_PERMISSIONS,
    AgencyRole.ACCOUNT_MANAGER: ACCOUNT_MANAGER_PERMISSIONS,
    AgencyRole.OPERATOR: OPERATOR_PERMISSIONS,
    AgencyRole.INTERNAL_APPROVER: INTERNAL_APPROVER_PERMISSIONS,
}

# What a member sees of a client, project or campaign they have no tie to
UNASSIGNED_MEMBER_PERMISSIONS = _build_permissions(
    (Resource.CLIENTS, Action.READ),
    (Resource.PROJECTS, Action.READ),
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.DELIVERABLES, Action.READ),
)


# Campaign roles
CAMPAIGN_OPERATOR_PERMISSIONS = _build_permissions(
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.CAMPAIGNS, Action.UPDATE),

    (Resource.DELIVERABLES, Action.CREATE),
    (Resource.DELIVERABLES, Action.READ),
    (Resource.DELIVERABLES, Action.UPDATE),
    (Resource.DELIVERABLES, Action.DELETE),
    (Resource.DELIVERABLES, Action.UPLOAD),

    (Resource.INTERNAL_REVIEW, Action.READ),

    (Resource.CREATORS, Action.READ),
    (Resource.CREATORS, Action.ASSIGN),
    (Resource.ANALYTICS, Action.READ),
    (Resource.ANALYTICS, Action.FETCH),
    (Resource.PAYMENTS, Action.READ),
)

CAMPAIGN_APPROVER_PERMISSIONS = _build_permissions(
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.CAMPAIGNS, Action.TRANSITION),
    (Resource.DELIVERABLES, Action.READ),
    (Resource.INTERNAL_REVIEW, Action.READ),
    (Resource.INTERNAL_REVIEW, Action.APPROVE),
    (Resource.ANALYTICS, Action.READ),
)

CAMPAIGN_VIEWER_PERMISSIONS = _build_permissions(
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.DELIVERABLES, Action.READ),
    (Resource.ANALYTICS, Action.READ),
)

CAMPAIGN_ROLE_PERMISSIONS: Dict[CampaignRole, List[str]] = {
    CampaignRole.OPERATOR: CAMPAIGN_OPERATOR_PERMISSIONS,
    CampaignRole.APPROVER: CAMPAIGN_APPROVER_PERMISSIONS,
    CampaignRole.VIEWER: CAMPAIGN_VIEWER_PERMISSIONS,
}

# Project approvers decide at the project tier for every campaign of the project
PROJECT_APPROVER_PERMISSIONS = _build_permissions(
    (Resource.PROJECTS, Action.READ),
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.DELIVERABLES, Action.READ),
    (Resource.PROJECT_REVIEW, Action.READ),
    (Resource.PROJECT_REVIEW, Action.APPROVE),
)


# Client roles (client portal)
CLIENT_APPROVER_PERMISSIONS = _build_permissions(
    (Resource.PROJECTS, Action.READ),
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.DELIVERABLES, Action.READ),
    (Resource.CLIENT_REVIEW, Action.READ),
    (Resource.CLIENT_REVIEW, Action.APPROVE),
)

CLIENT_VIEWER_PERMISSIONS = _build_permissions(
    (Resource.PROJECTS, Action.READ),
    (Resource.CAMPAIGNS, Action.READ),
    (Resource.DELIVERABLES, Action.READ),
    (Resource.CLIENT_REVIEW, Action.READ),
)

CLIENT_ROLE_PERMISSIONS: Dict[ClientRole, List[str]] = {
    ClientRole.APPROVER: CLIENT_APPROVER_PERMISSIONS,
    ClientRole.VIEWER: CLIENT_VIEWER_PERMISSIONS,
}


def get_agency_role_permissions(role: str) -> List[str]:
    """Permissions for an agency role name. Unknown roles get nothing."""
    try:
        return AGENCY_ROLE_PERMISSIONS[AgencyRole(role)]
    except ValueError:
        return []


def get_campaign_role_permissions(role: str) -> List[str]:
    try:
        return CAMPAIGN_ROLE_PERMISSIONS[CampaignRole(role)]
    except ValueError:
        return []
