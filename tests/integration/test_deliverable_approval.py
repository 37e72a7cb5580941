"""Integration tests for the deliverable review workflow.

Covers the upload -> submit -> campaign tier -> project tier -> client tier
path, rejections and rework, version rules, roster changes during review
and the client portal queue.
"""

import pytest

from agencyflow.core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from agencyflow.db.models import ActivityLogEntry, Approval, CampaignUser, ProjectApprover
from agencyflow.services.campaigns import CampaignService
from agencyflow.services.deliverables import DeliverableService
from agencyflow.services.projects import ProjectService

from tests.factories import (
    caller_for,
    create_client,
    create_contact,
    contact_caller,
    create_deliverable,
    create_version,
)

pytestmark = [pytest.mark.db, pytest.mark.integration]


def service_for(db_session, user):
    return DeliverableService(db_session, caller_for(db_session, user))


def portal_for(db_session, contact):
    return DeliverableService(db_session, contact_caller(db_session, contact))


def campaigns_for(db_session, user):
    return CampaignService(db_session, caller_for(db_session, user))


def projects_for(db_session, user):
    return ProjectService(db_session, caller_for(db_session, user))


@pytest.fixture
def submitted(db_session, world):
    """A deliverable with one version, submitted by the campaign operator."""
    service = service_for(db_session, world.operator)
    deliverable = service.create_deliverable(world.campaign.id, title="Launch reel", deliverable_type="reel")
    version = service.upload_deliverable_version(
        deliverable.id, file_name="launch.mp4", file_url="s3://bucket/launch.mp4"
    )
    service.submit_deliverable_for_review(deliverable.id)
    return deliverable, version


def campaign_tier_approves(db_session, world, version):
    for approver in (world.approver_a, world.approver_b):
        service_for(db_session, approver).approve_deliverable(version.id, "campaign")


class TestUploadAndSubmit:
    """Versions and submission."""

    def test_version_numbers_per_file(self, db_session, world):
        service = service_for(db_session, world.operator)
        deliverable = service.create_deliverable(world.campaign.id, title="Carousel")

        a1 = service.upload_deliverable_version(deliverable.id, file_name="a.jpg", file_url="s3://a1")
        b1 = service.upload_deliverable_version(deliverable.id, file_name="b.jpg", file_url="s3://b1")
        a2 = service.upload_deliverable_version(deliverable.id, file_name="a.jpg", file_url="s3://a2")

        assert (a1.version_number, b1.version_number, a2.version_number) == (1, 1, 2)
        assert [v.upload_seq for v in service.list_versions(deliverable.id)] == [1, 2, 3]

    def test_submit_requires_a_version(self, db_session, world):
        service = service_for(db_session, world.operator)
        deliverable = service.create_deliverable(world.campaign.id, title="Story")

        with pytest.raises(ValidationError) as exc_info:
            service.submit_deliverable_for_review(deliverable.id)
        assert exc_info.value.field == "versions"

    def test_blank_file_name(self, db_session, world):
        service = service_for(db_session, world.operator)
        deliverable = service.create_deliverable(world.campaign.id, title="Story")
        with pytest.raises(ValidationError):
            service.upload_deliverable_version(deliverable.id, file_name="  ", file_url="s3://x")

    def test_viewer_cannot_upload(self, db_session, world):
        deliverable = create_deliverable(db_session, world.campaign)
        with pytest.raises(ForbiddenError):
            service_for(db_session, world.viewer).upload_deliverable_version(
                deliverable.id, file_name="x.mp4", file_url="s3://x"
            )

    def test_activity_logged(self, db_session, world, submitted):
        deliverable, _ = submitted
        actions = {
            entry.action for entry in db_session.query(ActivityLogEntry)
            .filter(ActivityLogEntry.agency_id == world.agency.id)
        }
        assert {"deliverable.created", "deliverable.version_uploaded", "deliverable.submitted"} <= actions


class TestApprovalPath:
    """Decisions moving a deliverable through the tiers."""

    def test_first_decision_opens_internal_review(self, db_session, world, submitted):
        deliverable, version = submitted
        service_for(db_session, world.approver_a).approve_deliverable(version.id, "campaign")
        assert deliverable.status == "internal_review"

    def test_campaign_tier_needs_every_approver(self, db_session, world, submitted):
        deliverable, version = submitted
        service_for(db_session, world.approver_a).approve_deliverable(version.id, "campaign")
        assert deliverable.status == "internal_review"

        service_for(db_session, world.approver_b).approve_deliverable(version.id, "campaign")
        # no project approvers: straight to the client
        assert deliverable.status == "client_review"

    def test_full_path_with_project_tier(self, db_session, world, submitted):
        deliverable, version = submitted
        db_session.add(ProjectApprover(project_id=world.project.id, user_id=world.project_approver.id))
        db_session.flush()

        campaign_tier_approves(db_session, world, version)
        assert deliverable.status == "pending_project_approval"

        service_for(db_session, world.project_approver).approve_deliverable(version.id, "project")
        assert deliverable.status == "client_review"

        portal_for(db_session, world.client_approver).approve_deliverable(version.id, "client")
        assert deliverable.status == "approved"

        tiers = [a.tier for a in service_for(db_session, world.admin).list_deliverable_approvals(deliverable.id)]
        assert sorted(tiers) == ["campaign", "campaign", "client", "project"]

    def test_client_rejection(self, db_session, world, submitted):
        deliverable, version = submitted
        campaign_tier_approves(db_session, world, version)

        portal_for(db_session, world.client_approver).reject_deliverable(
            version.id, "client", comment="Logo is too small"
        )

        assert deliverable.status == "rejected"
        approval = db_session.query(Approval).filter_by(version_id=version.id, tier="client").one()
        assert approval.decided_by_contact == world.client_approver.id
        assert approval.comment == "Logo is too small"

    def test_reject_requires_comment(self, db_session, world, submitted):
        _, version = submitted
        with pytest.raises(ValidationError):
            service_for(db_session, world.approver_a).reject_deliverable(version.id, "campaign", comment=" ")

    def test_resubmission_after_rejection(self, db_session, world, submitted):
        deliverable, version = submitted
        service_for(db_session, world.approver_a).reject_deliverable(version.id, "campaign", comment="Re-cut")
        assert deliverable.status == "rejected"

        operator = service_for(db_session, world.operator)
        v2 = operator.upload_deliverable_version(deliverable.id, file_name="launch.mp4", file_url="s3://v2")
        operator.submit_deliverable_for_review(deliverable.id)
        assert deliverable.status == "submitted"
        assert v2.version_number == 2

        # the new version starts with an empty quorum
        service_for(db_session, world.approver_a).approve_deliverable(v2.id, "campaign")
        assert deliverable.status == "internal_review"


class TestDecisionRules:
    """Decisions that must be refused."""

    def test_stale_version(self, db_session, world, submitted):
        deliverable, v1 = submitted
        service_for(db_session, world.operator).upload_deliverable_version(
            deliverable.id, file_name="launch.mp4", file_url="s3://v2"
        )
        with pytest.raises(InvalidStateError):
            service_for(db_session, world.approver_a).approve_deliverable(v1.id, "campaign")

    def test_decider_must_be_on_roster(self, db_session, world, submitted):
        _, version = submitted
        with pytest.raises(ForbiddenError):
            service_for(db_session, world.admin).approve_deliverable(version.id, "campaign")

    def test_duplicate_decision(self, db_session, world, submitted):
        _, version = submitted
        approver = service_for(db_session, world.approver_a)
        approver.approve_deliverable(version.id, "campaign")
        with pytest.raises(InvalidStateError):
            approver.approve_deliverable(version.id, "campaign")

    def test_wrong_stage(self, db_session, world, submitted):
        _, version = submitted
        with pytest.raises(InvalidStateError) as exc_info:
            portal_for(db_session, world.client_approver).approve_deliverable(version.id, "client")
        assert exc_info.value.current_state == "submitted"

    def test_unknown_tier(self, db_session, world, submitted):
        _, version = submitted
        with pytest.raises(ValidationError):
            service_for(db_session, world.approver_a).approve_deliverable(version.id, "board")

    def test_client_viewer_cannot_decide(self, db_session, world, submitted):
        _, version = submitted
        campaign_tier_approves(db_session, world, version)
        with pytest.raises(ForbiddenError):
            portal_for(db_session, world.client_viewer).approve_deliverable(version.id, "client")

    def test_pending_deliverable_not_under_review(self, db_session, world):
        deliverable = create_deliverable(db_session, world.campaign)
        version = create_version(db_session, deliverable)
        with pytest.raises(InvalidStateError):
            service_for(db_session, world.approver_a).approve_deliverable(version.id, "campaign")


class TestVersionManagement:
    """Deleting versions and the client preview pointer."""

    def test_delete_latest_undecided_version(self, db_session, world):
        deliverable = create_deliverable(db_session, world.campaign)
        create_version(db_session, deliverable)
        v2 = create_version(db_session, deliverable)

        service = service_for(db_session, world.operator)
        service.delete_deliverable_version(v2.id)

        assert [v.version_number for v in service.list_versions(deliverable.id)] == [1]

    def test_cannot_delete_older_version(self, db_session, world):
        deliverable = create_deliverable(db_session, world.campaign)
        v1 = create_version(db_session, deliverable)
        create_version(db_session, deliverable)

        with pytest.raises(InvalidStateError):
            service_for(db_session, world.operator).delete_deliverable_version(v1.id)

    def test_cannot_delete_decided_version(self, db_session, world, submitted):
        _, version = submitted
        service_for(db_session, world.approver_a).approve_deliverable(version.id, "campaign")
        with pytest.raises(InvalidStateError):
            service_for(db_session, world.operator).delete_deliverable_version(version.id)

    def test_approved_deliverable_is_frozen(self, db_session, world):
        deliverable = create_deliverable(db_session, world.campaign, status="approved")
        version = create_version(db_session, deliverable)
        service = service_for(db_session, world.operator)

        with pytest.raises(ForbiddenError):
            service.delete_deliverable_version(version.id)
        with pytest.raises(InvalidStateError):
            service.upload_deliverable_version(deliverable.id, file_name="reel.mp4", file_url="s3://late")

    def test_preview_pointer(self, db_session, world):
        deliverable = create_deliverable(db_session, world.campaign)
        version = create_version(db_session, deliverable)
        service = service_for(db_session, world.operator)

        service.set_client_preview_version(deliverable.id, version.id)
        assert deliverable.client_preview_version_id == version.id

        service.delete_deliverable_version(version.id)
        assert deliverable.client_preview_version_id is None

    def test_preview_from_other_deliverable(self, db_session, world):
        deliverable = create_deliverable(db_session, world.campaign)
        foreign = create_version(db_session, create_deliverable(db_session, world.campaign))
        with pytest.raises(ValidationError):
            service_for(db_session, world.operator).set_client_preview_version(deliverable.id, foreign.id)


class TestClientPortalQueue:
    def test_only_own_client_review_items(self, db_session, world, submitted):
        deliverable, version = submitted
        create_deliverable(db_session, world.campaign, status="internal_review")
        campaign_tier_approves(db_session, world, version)

        queue = portal_for(db_session, world.client_approver).deliverables_pending_client_approval()

        assert [d.id for d in queue] == [deliverable.id]

    def test_users_have_no_queue(self, db_session, world):
        with pytest.raises(ForbiddenError):
            service_for(db_session, world.admin).deliverables_pending_client_approval()

    def test_contact_cannot_see_other_clients(self, db_session, world):
        other_contact = create_contact(db_session, create_client(db_session, world.agency), is_client_approver=True)
        deliverable = create_deliverable(db_session, world.campaign)
        with pytest.raises(NotFoundError):
            portal_for(db_session, other_contact).get_deliverable(deliverable.id)

    def test_viewer_contact_has_no_queue(self, db_session, world, submitted):
        _, version = submitted
        campaign_tier_approves(db_session, world, version)
        with pytest.raises(ForbiddenError):
            portal_for(db_session, world.client_viewer).deliverables_pending_client_approval()


class TestRejectionAndRework:
    """Rejections at each tier and the upload-and-resubmit loop."""

    def test_client_rejection_then_new_version(self, db_session, world, submitted):
        deliverable, v1 = submitted
        campaign_tier_approves(db_session, world, v1)
        portal_for(db_session, world.client_approver).reject_deliverable(v1.id, "client", comment="colors off")
        assert deliverable.status == "rejected"

        operator = service_for(db_session, world.operator)
        v2 = operator.upload_deliverable_version(deliverable.id, file_name="launch.mp4", file_url="s3://v2")
        operator.submit_deliverable_for_review(deliverable.id)
        assert deliverable.status == "submitted"

        history = service_for(db_session, world.manager).list_deliverable_approvals(deliverable.id)
        assert sorted((a.tier, a.decision) for a in history) == [
            ("campaign", "approved"),
            ("campaign", "approved"),
            ("client", "rejected"),
        ]
        assert {a.version_id for a in history} == {v1.id}
        assert [a.comment for a in history if a.decision == "rejected"] == ["colors off"]

        # v1 approvals do not count towards v2
        service_for(db_session, world.approver_a).approve_deliverable(v2.id, "campaign")
        assert deliverable.status == "internal_review"
        service_for(db_session, world.approver_b).approve_deliverable(v2.id, "campaign")
        assert deliverable.status == "client_review"

    def test_project_tier_rejection(self, db_session, world, submitted):
        deliverable, version = submitted
        db_session.add(ProjectApprover(project_id=world.project.id, user_id=world.project_approver.id))
        db_session.flush()
        campaign_tier_approves(db_session, world, version)
        assert deliverable.status == "pending_project_approval"

        service_for(db_session, world.project_approver).reject_deliverable(
            version.id, "project", comment="Wrong product shot"
        )

        assert deliverable.status == "rejected"
        approval = db_session.query(Approval).filter_by(version_id=version.id, tier="project").one()
        assert approval.decision == "rejected"
        assert approval.decided_by == world.project_approver.id
        with pytest.raises(InvalidStateError):
            portal_for(db_session, world.client_approver).approve_deliverable(version.id, "client")

    def test_resubmit_needs_a_new_version(self, db_session, world, submitted):
        deliverable, version = submitted
        service_for(db_session, world.approver_a).reject_deliverable(version.id, "campaign", comment="Re-cut")

        operator = service_for(db_session, world.operator)
        with pytest.raises(InvalidStateError) as exc_info:
            operator.submit_deliverable_for_review(deliverable.id)
        assert exc_info.value.current_state == "rejected"
        assert deliverable.status == "rejected"

        operator.upload_deliverable_version(deliverable.id, file_name="launch.mp4", file_url="s3://v2")
        operator.submit_deliverable_for_review(deliverable.id)
        assert deliverable.status == "submitted"

    def test_rejection_logged_with_its_comment(self, db_session, world, submitted):
        deliverable, version = submitted
        service_for(db_session, world.approver_a).approve_deliverable(version.id, "campaign", comment="Nice pacing")
        service_for(db_session, world.approver_b).reject_deliverable(version.id, "campaign", comment="Audio clips")

        entry = (
            db_session.query(ActivityLogEntry)
            .filter_by(entity_id=deliverable.id, action="deliverable.rejected")
            .one()
        )
        assert entry.after_state["status"] == "rejected"
        assert entry.extra_data["comment"] == "Audio clips"


class TestRosterChanges:
    """Removing an approver re-evaluates deliverables already in review."""

    def test_removing_undecided_campaign_approver_completes_tier(self, db_session, world, submitted):
        deliverable, version = submitted
        service_for(db_session, world.approver_a).approve_deliverable(version.id, "campaign")
        assert deliverable.status == "internal_review"

        assignment = (
            db_session.query(CampaignUser)
            .filter_by(campaign_id=world.campaign.id, user_id=world.approver_b.id)
            .one()
        )
        campaigns_for(db_session, world.manager).remove_user_from_campaign(assignment.id)

        assert deliverable.status == "client_review"
        entry = (
            db_session.query(ActivityLogEntry)
            .filter_by(entity_id=deliverable.id, action="deliverable.status_rederived")
            .one()
        )
        assert entry.extra_data["reason"] == "campaign.user_removed"
        assert entry.before_state["status"] == "internal_review"

    def test_demoting_approver_completes_tier(self, db_session, world, submitted):
        deliverable, version = submitted
        service_for(db_session, world.approver_b).approve_deliverable(version.id, "campaign")

        campaigns_for(db_session, world.manager).assign_user_to_campaign(
            world.campaign.id, world.approver_a.id, "viewer"
        )

        assert deliverable.status == "client_review"

    def test_removing_last_project_approver_skips_tier(self, db_session, world, submitted):
        deliverable, version = submitted
        projects = projects_for(db_session, world.manager)
        project_approver = projects.add_project_approver(world.project.id, world.project_approver.id)
        campaign_tier_approves(db_session, world, version)
        assert deliverable.status == "pending_project_approval"

        projects.remove_project_approver(project_approver.id)

        assert deliverable.status == "client_review"

    def test_untouched_when_tier_still_open(self, db_session, world, submitted):
        deliverable, version = submitted
        service_for(db_session, world.approver_a).approve_deliverable(version.id, "campaign")

        campaigns_for(db_session, world.manager).assign_user_to_campaign(
            world.campaign.id, world.viewer.id, "approver"
        )

        assert deliverable.status == "internal_review"
        assert not (
            db_session.query(ActivityLogEntry)
            .filter_by(entity_id=deliverable.id, action="deliverable.status_rederived")
            .count()
        )


class TestCaptions:
    def test_update_caption(self, db_session, world, submitted):
        _, version = submitted
        updated = service_for(db_session, world.operator).update_deliverable_version_caption(
            version.id, "  Summer is here #ad  "
        )
        assert updated.caption == "Summer is here #ad"

        cleared = service_for(db_session, world.operator).update_deliverable_version_caption(version.id, " ")
        assert cleared.caption is None

    def test_approved_caption_is_frozen(self, db_session, world):
        deliverable = create_deliverable(db_session, world.campaign, status="approved")
        version = create_version(db_session, deliverable)
        with pytest.raises(InvalidStateError):
            service_for(db_session, world.operator).update_deliverable_version_caption(version.id, "late edit")

    def test_viewer_cannot_edit_caption(self, db_session, world):
        version = create_version(db_session, create_deliverable(db_session, world.campaign))
        with pytest.raises(ForbiddenError):
            service_for(db_session, world.viewer).update_deliverable_version_caption(version.id, "edit")
