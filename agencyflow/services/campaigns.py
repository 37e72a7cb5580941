"""Campaign service: creation, lifecycle transitions and the campaign aggregate.

Every mutation re-checks that the campaign is not archived; ``archived`` is
terminal and freezes details, dates, brief, attachments and assignments alike.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional
from uuid import UUID

from agencyflow.core.approval import refresh_review_status
from agencyflow.core.audit import snapshot
from agencyflow.core.errors import InvalidStateError, NotFoundError, ValidationError
from agencyflow.core.lifecycle import CAMPAIGN_LIFECYCLE, CampaignTransition, transition_entity
from agencyflow.core.rbac.roles import CampaignRole
from agencyflow.db.models import Campaign, CampaignAttachment, CampaignUser
from .base import ScopedService, clean_name, require_active_member, require_campaign_editable

logger = logging.getLogger(__name__)

CAMPAIGN_TYPES = ("influencer", "social")


def check_dates(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and end_date < start_date:
        raise ValidationError("End date cannot be before start date", field="end_date")


class CampaignService(ScopedService):
    """Campaign aggregate operations for one caller."""

    def get_campaign(self, campaign_id: UUID) -> Campaign:
        campaign, _ = self.gate.authorize_campaign(campaign_id, "campaigns:read")
        return campaign

    def create_campaign(
        self,
        project_id: UUID,
        *,
        name: str,
        approver_user_ids: Iterable[UUID],
        campaign_type: str = "influencer",
        description: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        brief: Optional[str] = None,
    ) -> Campaign:
        """
        Create a draft campaign with its approver roster.

        Raises:
            ValidationError: Bad name, type or dates, no approvers, or an
                approver who is not an active member of the agency
            InvalidStateError: Project is archived
        """
        project, grant = self.gate.authorize_project(project_id, "campaigns:create")
        if project.is_archived:
            raise InvalidStateError(
                "Archived projects cannot take new campaigns",
                current_state="archived",
                attempted="create_campaign",
            )

        name = clean_name(name)
        if campaign_type not in CAMPAIGN_TYPES:
            raise ValidationError(f"Unknown campaign type: {campaign_type}", field="campaign_type")
        check_dates(start_date, end_date)

        approvers = list(dict.fromkeys(approver_user_ids or []))
        if not approvers:
            raise ValidationError("A campaign needs at least one approver", field="approver_user_ids")
        for user_id in approvers:
            require_active_member(self.db, grant.agency_id, user_id, "approver_user_ids")

        campaign = Campaign(
            project_id=project.id,
            name=name,
            campaign_type=campaign_type,
            description=description,
            start_date=start_date,
            end_date=end_date,
            brief=brief,
            created_by=self.caller.user_id,
        )
        self.db.add(campaign)
        self.db.flush()

        for user_id in approvers:
            self.db.add(CampaignUser(campaign_id=campaign.id, user_id=user_id, role=CampaignRole.APPROVER.value))
        self.db.flush()

        logger.info("campaign %s created in project %s", campaign.id, project.id)
        self.activity.log(
            grant.agency_id,
            "campaign",
            campaign.id,
            "campaign.created",
            after=snapshot(campaign),
            metadata={"approver_user_ids": [str(u) for u in approvers]},
        )
        return campaign

    # Lifecycle

    def activate_campaign(self, campaign_id: UUID) -> Campaign:
        return self._transition(campaign_id, CampaignTransition.ACTIVATE)

    def submit_campaign_for_review(self, campaign_id: UUID) -> Campaign:
        return self._transition(campaign_id, CampaignTransition.SUBMIT_FOR_REVIEW)

    def approve_campaign(self, campaign_id: UUID, *, comment: Optional[str] = None) -> Campaign:
        return self._transition(campaign_id, CampaignTransition.APPROVE, comment=comment)

    def reject_campaign(self, campaign_id: UUID, *, comment: Optional[str] = None) -> Campaign:
        """Send an in-review campaign back to active."""
        return self._transition(campaign_id, CampaignTransition.REJECT, comment=comment)

    def complete_campaign(self, campaign_id: UUID) -> Campaign:
        return self._transition(campaign_id, CampaignTransition.COMPLETE)

    def archive_campaign(self, campaign_id: UUID) -> Campaign:
        return self._transition(campaign_id, CampaignTransition.ARCHIVE)

    def _transition(
        self,
        campaign_id: UUID,
        transition: CampaignTransition,
        *,
        comment: Optional[str] = None,
    ) -> Campaign:
        campaign, grant = self.gate.authorize_campaign(campaign_id, "campaigns:transition")
        before = snapshot(campaign)
        rule = transition_entity(
            self.db, CAMPAIGN_LIFECYCLE, campaign, transition,
            permissions=grant.checker, comment=comment,
        )
        logger.info("campaign %s: %s -> %s", campaign.id, rule.from_state.value, rule.to_state.value)
        self.activity.log(
            grant.agency_id,
            "campaign",
            campaign.id,
            f"campaign.{rule.to_state.value}",
            before=before,
            after=snapshot(campaign),
            metadata={"transition": transition.value, "comment": comment},
        )
        return campaign

    # Details

    def update_campaign_details(
        self,
        campaign_id: UUID,
        *,
        name: Optional[str] = None,
        campaign_type: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Campaign:
        campaign, grant = self.gate.authorize_campaign(campaign_id, "campaigns:update")
        require_campaign_editable(campaign, "update_details")

        before = snapshot(campaign)
        if name is not None:
            campaign.name = clean_name(name)
        if campaign_type is not None:
            if campaign_type not in CAMPAIGN_TYPES:
                raise ValidationError(f"Unknown campaign type: {campaign_type}", field="campaign_type")
            campaign.campaign_type = campaign_type
        if description is not None:
            campaign.description = description
        self.db.flush()

        self.activity.log(
            grant.agency_id, "campaign", campaign.id, "campaign.updated",
            before=before, after=snapshot(campaign),
        )
        return campaign

    def set_campaign_dates(
        self,
        campaign_id: UUID,
        start_date: Optional[date],
        end_date: Optional[date],
    ) -> Campaign:
        campaign, grant = self.gate.authorize_campaign(campaign_id, "campaigns:update")
        require_campaign_editable(campaign, "set_dates")
        check_dates(start_date, end_date)

        before = snapshot(campaign)
        campaign.start_date = start_date
        campaign.end_date = end_date
        self.db.flush()

        self.activity.log(
            grant.agency_id, "campaign", campaign.id, "campaign.dates_set",
            before=before, after=snapshot(campaign),
        )
        return campaign

    def update_campaign_brief(self, campaign_id: UUID, brief: Optional[str]) -> Campaign:
        campaign, grant = self.gate.authorize_campaign(campaign_id, "campaigns:update")
        require_campaign_editable(campaign, "update_brief")

        before = snapshot(campaign)
        campaign.brief = brief
        self.db.flush()

        self.activity.log(
            grant.agency_id, "campaign", campaign.id, "campaign.brief_updated",
            before=before, after=snapshot(campaign),
        )
        return campaign

    # Attachments

    def add_campaign_attachment(
        self,
        campaign_id: UUID,
        *,
        file_name: str,
        file_url: str,
        file_size: Optional[int] = None,
        mime_type: Optional[str] = None,
    ) -> CampaignAttachment:
        campaign, grant = self.gate.authorize_campaign(campaign_id, "campaigns:update")
        require_campaign_editable(campaign, "add_attachment")
        if not (file_name or "").strip():
            raise ValidationError("File name is required", field="file_name")
        if not (file_url or "").strip():
            raise ValidationError("File URL is required", field="file_url")

        attachment = CampaignAttachment(
            campaign_id=campaign.id,
            file_name=file_name.strip(),
            file_url=file_url,
            file_size=file_size,
            mime_type=mime_type,
            uploaded_by=self.caller.user_id,
        )
        self.db.add(attachment)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "campaign_attachment", attachment.id, "campaign.attachment_added",
            after=snapshot(attachment), metadata={"campaign_id": str(campaign.id)},
        )
        return attachment

    def remove_campaign_attachment(self, attachment_id: UUID) -> None:
        attachment = self.db.get(CampaignAttachment, attachment_id)
        if attachment is None:
            raise NotFoundError("campaign_attachment", attachment_id)
        campaign, grant = self.gate.authorize_campaign(attachment.campaign_id, "campaigns:update")
        require_campaign_editable(campaign, "remove_attachment")

        before = snapshot(attachment)
        self.db.delete(attachment)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "campaign_attachment", attachment_id, "campaign.attachment_removed",
            before=before, metadata={"campaign_id": str(campaign.id)},
        )

    # Assignments

    def list_campaign_users(self, campaign_id: UUID) -> List[CampaignUser]:
        self.gate.authorize_campaign(campaign_id, "campaigns:read")
        return (
            self.db.query(CampaignUser)
            .filter(CampaignUser.campaign_id == campaign_id)
            .order_by(CampaignUser.created_at.asc())
            .all()
        )

    def assign_user_to_campaign(self, campaign_id: UUID, user_id: UUID, role: str) -> CampaignUser:
        """
        Assign a member to the campaign, or change their role.

        Raises:
            ValidationError: Unknown role, user not an active member, or the
                change would leave the campaign without an approver
        """
        campaign, grant = self.gate.authorize_campaign(campaign_id, "campaigns:assign")
        require_campaign_editable(campaign, "assign_user")
        try:
            role = CampaignRole(role)
        except ValueError:
            raise ValidationError(f"Unknown campaign role: {role}", field="role")
        require_active_member(self.db, grant.agency_id, user_id, "user_id")

        assignment = (
            self.db.query(CampaignUser)
            .filter(CampaignUser.campaign_id == campaign.id, CampaignUser.user_id == user_id)
            .first()
        )
        if assignment is None:
            assignment = CampaignUser(campaign_id=campaign.id, user_id=user_id, role=role.value)
            self.db.add(assignment)
            before = None
        else:
            if assignment.role == CampaignRole.APPROVER.value and role != CampaignRole.APPROVER:
                self._require_other_approver(campaign.id, assignment.id)
            before = snapshot(assignment)
            assignment.role = role.value
        self.db.flush()

        self.activity.log(
            grant.agency_id, "campaign_user", assignment.id, "campaign.user_assigned",
            before=before, after=snapshot(assignment),
            metadata={"campaign_id": str(campaign.id), "role": role.value},
        )
        refresh_review_status(
            self.db, self.activity, grant.agency_id, campaign_id=campaign.id, reason="campaign.user_assigned"
        )
        return assignment

    def remove_user_from_campaign(self, campaign_user_id: UUID) -> None:
        assignment = self.db.get(CampaignUser, campaign_user_id)
        if assignment is None:
            raise NotFoundError("campaign_user", campaign_user_id)
        campaign, grant = self.gate.authorize_campaign(assignment.campaign_id, "campaigns:assign")
        require_campaign_editable(campaign, "remove_user")
        if assignment.role == CampaignRole.APPROVER.value:
            self._require_other_approver(campaign.id, assignment.id)

        before = snapshot(assignment)
        self.db.delete(assignment)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "campaign_user", campaign_user_id, "campaign.user_removed",
            before=before, metadata={"campaign_id": str(campaign.id)},
        )
        # the approver tier may now be complete without the removed member
        refresh_review_status(
            self.db, self.activity, grant.agency_id, campaign_id=campaign.id, reason="campaign.user_removed"
        )

    def _require_other_approver(self, campaign_id: UUID, excluding_id: UUID) -> None:
        others = (
            self.db.query(CampaignUser.id)
            .filter(
                CampaignUser.campaign_id == campaign_id,
                CampaignUser.role == CampaignRole.APPROVER.value,
                CampaignUser.id != excluding_id,
            )
            .count()
        )
        if others == 0:
            raise ValidationError("A campaign must keep at least one approver", field="role")

