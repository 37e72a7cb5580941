"""Deliverable service: versions, submission and the client-portal queue.

Decisions are recorded by ``agencyflow.core.approval.ApprovalService``; this
service resolves the deliverable from the version being decided on and
delegates.
"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func

from agencyflow.core.approval import ApprovalService, Decision, latest_version, lock_deliverable
from agencyflow.core.audit import RequestContext, snapshot
from agencyflow.core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from agencyflow.core.lifecycle import (
    CampaignStatus,
    DELIVERABLE_LIFECYCLE,
    DeliverableStatus,
    DeliverableTransition,
    transition_entity,
)
from agencyflow.core.rbac import Caller
from agencyflow.db.models import (
    Approval,
    Campaign,
    Deliverable,
    DeliverableVersion,
    Project,
)
from .base import ScopedService, clean_name, require_campaign_editable

logger = logging.getLogger(__name__)


class DeliverableService(ScopedService):

    def __init__(self, db, caller: Caller, *, context: Optional[RequestContext] = None):
        super().__init__(db, caller, context=context)
        self.approvals = ApprovalService(db, caller, context=context)

    def get_deliverable(self, deliverable_id: UUID) -> Deliverable:
        deliverable, _ = self.gate.authorize_deliverable(deliverable_id, "deliverables:read")
        return deliverable

    def list_versions(self, deliverable_id: UUID) -> List[DeliverableVersion]:
        self.gate.authorize_deliverable(deliverable_id, "deliverables:read")
        return (
            self.db.query(DeliverableVersion)
            .filter(DeliverableVersion.deliverable_id == deliverable_id)
            .order_by(DeliverableVersion.upload_seq.asc())
            .all()
        )

    def create_deliverable(
        self,
        campaign_id: UUID,
        *,
        title: str,
        deliverable_type: str = "post",
        description: Optional[str] = None,
        due_date: Optional[date] = None,
    ) -> Deliverable:
        campaign, grant = self.gate.authorize_campaign(campaign_id, "deliverables:create")
        require_campaign_editable(campaign, "create_deliverable")

        deliverable = Deliverable(
            campaign_id=campaign.id,
            title=clean_name(title, "title"),
            deliverable_type=deliverable_type or "post",
            description=description,
            due_date=due_date,
            created_by=self.caller.user_id,
        )
        self.db.add(deliverable)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "deliverable", deliverable.id, "deliverable.created",
            after=snapshot(deliverable), metadata={"campaign_id": str(campaign.id)},
        )
        return deliverable

    def upload_deliverable_version(
        self,
        deliverable_id: UUID,
        *,
        file_name: str,
        file_url: str,
        file_size: Optional[int] = None,
        mime_type: Optional[str] = None,
        caption: Optional[str] = None,
    ) -> DeliverableVersion:
        """
        Add a new version. The new version becomes the latest and its
        approval quorum starts empty.

        Raises:
            InvalidStateError: Deliverable is approved, or its campaign archived
            ValidationError: Missing file name or URL
        """
        deliverable, grant = self.gate.authorize_deliverable(deliverable_id, "deliverables:upload")
        require_campaign_editable(deliverable.campaign, "upload_version")

        file_name = (file_name or "").strip()
        if not file_name:
            raise ValidationError("File name is required", field="file_name")
        if not (file_url or "").strip():
            raise ValidationError("File URL is required", field="file_url")

        # Serialize uploads so sequence numbers stay unique
        deliverable = self._lock(deliverable.id)
        if deliverable.status == DeliverableStatus.APPROVED.value:
            raise InvalidStateError(
                "Approved deliverables cannot take new versions",
                current_state=deliverable.status,
                attempted="upload_version",
            )

        last_number = (
            self.db.query(func.max(DeliverableVersion.version_number))
            .filter(
                DeliverableVersion.deliverable_id == deliverable.id,
                DeliverableVersion.file_name == file_name,
            )
            .scalar()
        )
        last_seq = (
            self.db.query(func.max(DeliverableVersion.upload_seq))
            .filter(DeliverableVersion.deliverable_id == deliverable.id)
            .scalar()
        )

        version = DeliverableVersion(
            deliverable_id=deliverable.id,
            file_name=file_name,
            version_number=(last_number or 0) + 1,
            upload_seq=(last_seq or 0) + 1,
            file_url=file_url,
            file_size=file_size,
            mime_type=mime_type,
            caption=caption,
            submitted_by=self.caller.user_id,
        )
        self.db.add(version)
        self.db.flush()

        logger.info(
            "deliverable %s: uploaded %s v%s (seq %s)",
            deliverable.id, file_name, version.version_number, version.upload_seq,
        )
        self.activity.log(
            grant.agency_id, "deliverable_version", version.id, "deliverable.version_uploaded",
            after=snapshot(version), metadata={"deliverable_id": str(deliverable.id)},
        )
        return version

    def submit_deliverable_for_review(self, deliverable_id: UUID) -> Deliverable:
        """
        Send a pending or rejected deliverable into review.

        Raises:
            ValidationError: No version uploaded yet
            InvalidStateError: Deliverable was rejected and no new version
                has been uploaded since
        """
        deliverable, grant = self.gate.authorize_deliverable(deliverable_id, "deliverables:update")
        require_campaign_editable(deliverable.campaign, "submit_deliverable")
        deliverable = self._lock(deliverable.id)
        version = latest_version(self.db, deliverable.id)
        if version is None:
            raise ValidationError("Upload at least one version before submitting", field="versions")

        if deliverable.status == DeliverableStatus.REJECTED.value:
            rejected = (
                self.db.query(Approval.id)
                .filter(Approval.version_id == version.id, Approval.decision == Decision.REJECTED.value)
                .first()
            )
            if rejected is not None:
                raise InvalidStateError(
                    "Upload a new version before resubmitting a rejected deliverable",
                    current_state=deliverable.status,
                    attempted="submit",
                )

        before = snapshot(deliverable)
        transition_entity(self.db, DELIVERABLE_LIFECYCLE, deliverable, DeliverableTransition.SUBMIT)

        self.activity.log(
            grant.agency_id, "deliverable", deliverable.id, "deliverable.submitted",
            before=before, after=snapshot(deliverable),
        )
        return deliverable

    # Decisions

    def approve_deliverable(self, version_id: UUID, tier: str, *, comment: Optional[str] = None) -> Deliverable:
        version = self._version(version_id)
        return self.approvals.approve(version.deliverable_id, version.id, tier, comment=comment)

    def reject_deliverable(self, version_id: UUID, tier: str, *, comment: str) -> Deliverable:
        version = self._version(version_id)
        return self.approvals.reject(version.deliverable_id, version.id, tier, comment=comment)

    def list_deliverable_approvals(self, deliverable_id: UUID) -> List[Approval]:
        return self.approvals.list_approvals(deliverable_id)

    # Versions

    def delete_deliverable_version(self, version_id: UUID) -> None:
        """
        Delete the latest version of one file.

        Raises:
            ForbiddenError: Deliverable is approved
            InvalidStateError: Version has recorded decisions, or a newer
                version of the same file exists
        """
        version = self._version(version_id)
        deliverable, grant = self.gate.authorize_deliverable(version.deliverable_id, "deliverables:delete")
        require_campaign_editable(deliverable.campaign, "delete_version")
        deliverable = self._lock(deliverable.id)

        if deliverable.status == DeliverableStatus.APPROVED.value:
            raise ForbiddenError("Versions of an approved deliverable cannot be deleted")

        has_decisions = self.db.query(Approval.id).filter(Approval.version_id == version.id).first()
        if has_decisions is not None:
            raise InvalidStateError(
                "Version has recorded decisions and cannot be deleted",
                current_state=deliverable.status,
                attempted="delete_version",
            )

        newer = (
            self.db.query(DeliverableVersion.id)
            .filter(
                DeliverableVersion.deliverable_id == deliverable.id,
                DeliverableVersion.file_name == version.file_name,
                DeliverableVersion.version_number > version.version_number,
            )
            .first()
        )
        if newer is not None:
            raise InvalidStateError(
                "Only the latest version of a file can be deleted",
                current_state=deliverable.status,
                attempted="delete_version",
            )

        before = snapshot(version)
        if deliverable.client_preview_version_id == version.id:
            deliverable.client_preview_version_id = None
            self.db.flush()
        self.db.delete(version)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "deliverable_version", version_id, "deliverable.version_deleted",
            before=before, metadata={"deliverable_id": str(deliverable.id)},
        )

    def update_deliverable_version_caption(self, version_id: UUID, caption: Optional[str]) -> DeliverableVersion:
        """Replace the caption of one version. A blank caption clears it."""
        version = self._version(version_id)
        deliverable, grant = self.gate.authorize_deliverable(version.deliverable_id, "deliverables:update")
        require_campaign_editable(deliverable.campaign, "update_caption")
        if deliverable.status == DeliverableStatus.APPROVED.value:
            raise InvalidStateError(
                "Captions of an approved deliverable are frozen",
                current_state=deliverable.status,
                attempted="update_caption",
            )

        before = snapshot(version)
        version.caption = (caption or "").strip() or None
        self.db.flush()

        self.activity.log(
            grant.agency_id, "deliverable_version", version.id, "deliverable.version_caption_updated",
            before=before, after=snapshot(version), metadata={"deliverable_id": str(deliverable.id)},
        )
        return version

    def set_client_preview_version(self, deliverable_id: UUID, version_id: Optional[UUID]) -> Deliverable:
        """Point the client portal at one version, or clear the pointer with None."""
        deliverable, grant = self.gate.authorize_deliverable(deliverable_id, "deliverables:update")
        require_campaign_editable(deliverable.campaign, "set_preview")
        if version_id is not None:
            version = self.db.get(DeliverableVersion, version_id)
            if version is None or version.deliverable_id != deliverable.id:
                raise ValidationError("Version does not belong to this deliverable", field="version_id")

        before = snapshot(deliverable)
        deliverable.client_preview_version_id = version_id
        self.db.flush()

        self.activity.log(
            grant.agency_id, "deliverable", deliverable.id, "deliverable.preview_set",
            before=before, after=snapshot(deliverable),
        )
        return deliverable

    # Client portal

    def deliverables_pending_client_approval(self) -> List[Deliverable]:
        """Deliverables in client review for the calling contact's client.

        Raises:
            ForbiddenError: Caller is not a contact, or is not a client approver
        """
        if not self.caller.is_contact:
            raise ForbiddenError("Only client contacts have a client approval queue")
        contact = self.caller.contact
        if not contact.is_client_approver:
            raise ForbiddenError("Only client approvers have a client approval queue")
        if not contact.is_active:
            return []
        return (
            self.db.query(Deliverable)
            .join(Campaign, Deliverable.campaign_id == Campaign.id)
            .join(Project, Campaign.project_id == Project.id)
            .filter(
                Project.client_id == contact.client_id,
                Project.is_archived.is_(False),
                Campaign.status != CampaignStatus.ARCHIVED.value,
                Deliverable.status == DeliverableStatus.CLIENT_REVIEW.value,
            )
            .order_by(Deliverable.due_date.asc(), Deliverable.created_at.asc())
            .all()
        )

    def _version(self, version_id: UUID) -> DeliverableVersion:
        version = self.db.get(DeliverableVersion, version_id)
        if version is None:
            raise NotFoundError("deliverable_version", version_id)
        return version

    def _lock(self, deliverable_id: UUID) -> Deliverable:
        return lock_deliverable(self.db, deliverable_id)
