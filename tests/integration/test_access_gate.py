"""Integration tests for tenant isolation and scope resolution."""

from uuid import uuid4

import pytest

from agencyflow.core.errors import ForbiddenError, NotFoundError
from agencyflow.core.rbac import AccessGate
from agencyflow.db.models import AgencyMembership, ProjectApprover

from tests.factories import (
    caller_for,
    contact_caller,
    create_campaign,
    create_client,
    create_contact,
    create_deliverable,
    create_project,
)

pytestmark = [pytest.mark.db, pytest.mark.integration]


def gate_for(db_session, user, agency=None):
    return AccessGate(db_session, caller_for(db_session, user, agency))


class TestTenantIsolation:
    """Resources of another agency or client are invisible."""

    def test_outsider_sees_nothing(self, db_session, world):
        gate = gate_for(db_session, world.outsider)
        with pytest.raises(NotFoundError):
            gate.authorize_campaign(world.campaign.id, "campaigns:read")
        with pytest.raises(NotFoundError):
            gate.authorize_agency(world.agency.id, "agency:read")
        with pytest.raises(NotFoundError):
            gate.authorize_creator(world.creator.id, "creators:read")

    def test_inactive_membership(self, db_session, world):
        membership = db_session.query(AgencyMembership).filter_by(user_id=world.operator.id).one()
        membership.is_active = False
        db_session.flush()
        with pytest.raises(NotFoundError):
            gate_for(db_session, world.operator).authorize_campaign(world.campaign.id, "campaigns:read")

    def test_contact_limited_to_own_client(self, db_session, world):
        other_client = create_client(db_session, world.agency)
        other_project = create_project(db_session, other_client)
        gate = AccessGate(db_session, contact_caller(db_session, world.client_approver))

        project, _ = gate.authorize_project(world.project.id, "projects:read")
        assert project.id == world.project.id
        with pytest.raises(NotFoundError):
            gate.authorize_project(other_project.id, "projects:read")

    def test_inactive_contact(self, db_session, world):
        contact = create_contact(db_session, world.client, is_client_approver=True, is_active=False)
        with pytest.raises(NotFoundError):
            AccessGate(db_session, contact_caller(db_session, contact)).authorize_campaign(
                world.campaign.id, "campaigns:read"
            )

    def test_contacts_have_no_agency_access(self, db_session, world):
        gate = AccessGate(db_session, contact_caller(db_session, world.client_approver))
        with pytest.raises(NotFoundError):
            gate.authorize_agency(world.agency.id, "agency:read")

    def test_missing_resource(self, db_session, world):
        with pytest.raises(NotFoundError):
            gate_for(db_session, world.admin).authorize_deliverable(uuid4(), "deliverables:read")


class TestScopeResolution:
    """Which ties grant what at campaign scope."""

    def test_admin_has_everything(self, db_session, world):
        _, grant = gate_for(db_session, world.admin).authorize_campaign(world.campaign.id, "campaigns:transition")
        assert grant.agency_id == world.agency.id
        assert grant.checker.has_permission("payments:update")

    def test_owning_manager(self, db_session, world):
        _, grant = gate_for(db_session, world.manager).authorize_campaign(world.campaign.id, "campaigns:transition")
        assert grant.membership.role == "account_manager"

    def test_manager_of_another_client_is_read_only(self, db_session, world):
        other_client = create_client(db_session, world.agency, account_manager=world.manager)
        gate = gate_for(db_session, world.manager)
        gate.authorize_client(other_client.id, "clients:update")

        world.client.account_manager_id = None
        db_session.flush()
        with pytest.raises(ForbiddenError):
            gate.authorize_campaign(world.campaign.id, "campaigns:update")
        gate.authorize_campaign(world.campaign.id, "campaigns:read")

    def test_unassigned_member_reads_only(self, db_session, world):
        gate = gate_for(db_session, world.viewer)
        deliverable = create_deliverable(db_session, world.campaign)
        gate.authorize_deliverable(deliverable.id, "deliverables:read")
        with pytest.raises(ForbiddenError) as exc_info:
            gate.authorize_deliverable(deliverable.id, "deliverables:upload")
        assert exc_info.value.permission == "deliverables:upload"

    def test_campaign_operator(self, db_session, world):
        _, grant = gate_for(db_session, world.operator).authorize_campaign(world.campaign.id, "deliverables:upload")
        assert not grant.checker.has_permission("campaigns:transition")
        assert not grant.checker.has_permission("payments:update")

    def test_project_approver_gains_review_rights(self, db_session, world):
        gate = gate_for(db_session, world.project_approver)
        with pytest.raises(ForbiddenError):
            gate.authorize_campaign(world.campaign.id, "project_review:approve")

        db_session.add(ProjectApprover(project_id=world.project.id, user_id=world.project_approver.id))
        db_session.flush()
        gate.authorize_campaign(world.campaign.id, "project_review:approve")

    def test_rights_do_not_leak_across_campaigns(self, db_session, world):
        other = create_campaign(db_session, world.project, approvers=[world.approver_b])
        with pytest.raises(ForbiddenError):
            gate_for(db_session, world.operator).authorize_campaign(other.id, "deliverables:upload")


class TestSuspendedAgency:
    def test_reads_allowed_writes_refused(self, db_session, world):
        world.agency.status = "suspended"
        db_session.flush()
        gate = gate_for(db_session, world.admin)

        gate.authorize_campaign(world.campaign.id, "campaigns:read")
        with pytest.raises(ForbiddenError):
            gate.authorize_campaign(world.campaign.id, "campaigns:update")

    def test_requested_agency_header(self, db_session, world):
        """Membership in two agencies: the requested one wins when it is valid."""
        db_session.add(AgencyMembership(agency_id=world.other_agency.id, user_id=world.admin.id, role="operator"))
        db_session.flush()

        caller = caller_for(db_session, world.admin, world.other_agency)
        assert caller.effective_agency_id == world.other_agency.id
        assert caller_for(db_session, world.admin).effective_agency_id == world.agency.id
