"""Permission checking utilities for AgencyFlow."""

from typing import Iterable, List, Optional, Union
from uuid import UUID

from .permissions import Permission, Resource, Action


class PermissionChecker:
    """Checks a resolved permission set, honouring ``resource:*`` and ``*:*`` wildcards."""

    def __init__(self, user_permissions: Iterable[str], agency_id: Optional[UUID] = None):
        """
        Args:
            user_permissions: Permission strings granted in the current scope
            agency_id: Agency the permissions were resolved in
        """
        self.permissions = set(user_permissions)
        self.agency_id = agency_id

    def has_permission(self, permission: Union[str, Permission]) -> bool:
        perm_str = str(permission) if isinstance(permission, Permission) else permission

        if perm_str in self.permissions:
            return True

        if ":" in perm_str:
            resource = perm_str.split(":")[0]
            if f"{resource}:*" in self.permissions:
                return True
            if "*:*" in self.permissions:
                return True

        return False

    def has_any_permission(self, permissions: List[Union[str, Permission]]) -> bool:
        return any(self.has_permission(p) for p in permissions)

    def has_all_permissions(self, permissions: List[Union[str, Permission]]) -> bool:
        return all(self.has_permission(p) for p in permissions)

    def can_access_resource(self, resource: Resource, action: Action) -> bool:
        return self.has_permission(Permission(resource, action))

    def merged(self, *others: Iterable[str]) -> "PermissionChecker":
        """A new checker holding this set plus ``others``."""
        combined = set(self.permissions)
        for perms in others:
            combined.update(perms)
        return PermissionChecker(combined, self.agency_id)

    def __repr__(self) -> str:
        return f"<PermissionChecker {sorted(self.permissions)}>"
