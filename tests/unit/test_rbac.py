"""Tests for the permission model, role matrices and checker."""

import pytest

from agencyflow.core.rbac import (
    Action,
    AgencyRole,
    CampaignRole,
    Permission,
    PermissionChecker,
    Resource,
)
from agencyflow.core.rbac.permissions import PERMISSION_DEFINITIONS, is_valid_permission
from agencyflow.core.rbac.roles import (
    AGENCY_ROLE_PERMISSIONS,
    CAMPAIGN_ROLE_PERMISSIONS,
    CLIENT_APPROVER_PERMISSIONS,
    CLIENT_VIEWER_PERMISSIONS,
    UNASSIGNED_MEMBER_PERMISSIONS,
    get_agency_role_permissions,
    get_campaign_role_permissions,
)


class TestPermission:
    """Permission parsing and the closed matrix."""

    def test_string_round_trip(self):
        perm = Permission.from_string("campaigns:transition")
        assert perm == Permission(Resource.CAMPAIGNS, Action.TRANSITION)
        assert str(perm) == "campaigns:transition"

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            Permission.from_string("campaigns")
        with pytest.raises(ValueError):
            Permission.from_string("campaigns:fly")

    def test_definitions_are_closed(self):
        assert is_valid_permission("analytics:fetch")
        assert is_valid_permission("client_review:approve")
        assert not is_valid_permission("analytics:delete")
        assert "*:*" not in PERMISSION_DEFINITIONS

    def test_role_matrices_only_use_defined_permissions(self):
        matrices = list(AGENCY_ROLE_PERMISSIONS.values()) + list(CAMPAIGN_ROLE_PERMISSIONS.values())
        matrices += [CLIENT_APPROVER_PERMISSIONS, CLIENT_VIEWER_PERMISSIONS, UNASSIGNED_MEMBER_PERMISSIONS]
        for perms in matrices:
            for perm in perms:
                assert perm == "*:*" or is_valid_permission(perm), perm


class TestPermissionChecker:
    """Wildcard handling."""

    def test_exact_match(self):
        checker = PermissionChecker(["deliverables:upload"])
        assert checker.has_permission("deliverables:upload")
        assert not checker.has_permission("deliverables:delete")

    def test_resource_wildcard(self):
        checker = PermissionChecker(["payments:*"])
        assert checker.has_permission("payments:update")
        assert not checker.has_permission("campaigns:read")

    def test_global_wildcard(self):
        checker = PermissionChecker(["*:*"])
        assert checker.has_permission(Permission(Resource.EMAIL_CONFIG, Action.CONFIGURE))

    def test_any_and_all(self):
        checker = PermissionChecker(["campaigns:read", "deliverables:read"])
        assert checker.has_any_permission(["campaigns:update", "campaigns:read"])
        assert not checker.has_all_permissions(["campaigns:update", "campaigns:read"])

    def test_merged_does_not_mutate(self):
        base = PermissionChecker(["campaigns:read"])
        merged = base.merged(["campaigns:update"])
        assert merged.has_permission("campaigns:update")
        assert not base.has_permission("campaigns:update")


class TestRoleMatrices:
    """What each role is and is not allowed to do."""

    def test_admin_holds_wildcard(self):
        assert get_agency_role_permissions("agency_admin") == ["*:*"]

    def test_unknown_roles_get_nothing(self):
        assert get_agency_role_permissions("superuser") == []
        assert get_campaign_role_permissions("owner") == []

    def test_only_admin_configures_email(self):
        for role in AgencyRole:
            checker = PermissionChecker(get_agency_role_permissions(role.value))
            assert checker.has_permission("email_config:configure") == (role == AgencyRole.AGENCY_ADMIN)

    def test_internal_approver_decides_campaign_tier_only(self):
        checker = PermissionChecker(get_agency_role_permissions("internal_approver"))
        assert checker.has_permission("internal_review:approve")
        assert not checker.has_permission("project_review:approve")
        assert not checker.has_permission("client_review:approve")
        assert not checker.has_permission("analytics:fetch")

    def test_account_manager_cannot_decide_for_client(self):
        checker = PermissionChecker(get_agency_role_permissions("account_manager"))
        assert checker.has_permission("campaigns:transition")
        assert not checker.has_permission("client_review:approve")

    def test_client_creation_roles(self):
        for role in AgencyRole:
            checker = PermissionChecker(get_agency_role_permissions(role.value))
            assert checker.has_permission("clients:create") == (
                role in (AgencyRole.AGENCY_ADMIN, AgencyRole.ACCOUNT_MANAGER)
            )

    def test_campaign_roles(self):
        operator = PermissionChecker(get_campaign_role_permissions(CampaignRole.OPERATOR.value))
        approver = PermissionChecker(get_campaign_role_permissions(CampaignRole.APPROVER.value))
        viewer = PermissionChecker(get_campaign_role_permissions(CampaignRole.VIEWER.value))

        assert operator.has_permission("deliverables:upload")
        assert not operator.has_permission("campaigns:transition")
        assert approver.has_permission("campaigns:transition")
        assert approver.has_permission("internal_review:approve")
        assert not viewer.has_any_permission(["deliverables:upload", "campaigns:update", "analytics:fetch"])

    def test_client_viewer_cannot_approve(self):
        assert PermissionChecker(CLIENT_APPROVER_PERMISSIONS).has_permission("client_review:approve")
        assert not PermissionChecker(CLIENT_VIEWER_PERMISSIONS).has_permission("client_review:approve")

    def test_unassigned_members_are_read_only(self):
        checker = PermissionChecker(UNASSIGNED_MEMBER_PERMISSIONS)
        for perm in UNASSIGNED_MEMBER_PERMISSIONS:
            assert perm.endswith(":read")
        assert not checker.has_permission("campaigns:update")
