"""RBAC (Role-Based Access Control) module for AgencyFlow.

Defines the permission model, the closed role families with their permission
matrices, and the Access Gate that resolves them per resource.
"""

from .permissions import Permission, Resource, Action, PERMISSION_DEFINITIONS
from .roles import AgencyRole, CampaignRole, ClientRole
from .checker import PermissionChecker
from .gate import AccessGate, AccessGrant, Caller, load_user_caller, load_contact_caller

__all__ = [
    "Permission",
    "Resource",
    "Action",
    "PERMISSION_DEFINITIONS",
    "AgencyRole",
    "CampaignRole",
    "ClientRole",
    "PermissionChecker",
    "AccessGate",
    "AccessGrant",
    "Caller",
    "load_user_caller",
    "load_contact_caller",
]
