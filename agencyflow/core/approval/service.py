"""Approval service: records tier decisions and re-derives deliverable status.

The deliverable row is locked for the whole read-evaluate-write so two
approvers deciding at once both see each other's decision before quorum is
evaluated.

Status is re-derived in two places: after every decision, and after a
roster change (``refresh_review_status``), since removing an approver can
complete a tier whose remaining members have all approved.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from agencyflow.core.audit import ActivityLogger, RequestContext, snapshot
from agencyflow.core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from agencyflow.core.lifecycle import (
    DELIVERABLE_LIFECYCLE,
    DeliverableStatus,
    DeliverableTransition,
    transition_entity,
)
from agencyflow.core.rbac import AccessGate, Caller
from agencyflow.core.rbac.roles import CampaignRole
from agencyflow.db.models import (
    Approval,
    Campaign,
    CampaignUser,
    Contact,
    Deliverable,
    DeliverableVersion,
    ProjectApprover,
)
from .quorum import (
    ApprovalTier,
    Decision,
    DecisionRecord,
    Rosters,
    PASSED_TIERS,
    TIER_PERMISSIONS,
    TIER_STAGES,
    derive_status,
    next_transition,
)

logger = logging.getLogger(__name__)

# Stages holding decisions that a roster change can re-evaluate
REVIEW_STAGES = (
    DeliverableStatus.INTERNAL_REVIEW,
    DeliverableStatus.PENDING_PROJECT_APPROVAL,
    DeliverableStatus.CLIENT_REVIEW,
)


def latest_version(db: Session, deliverable_id: UUID) -> Optional[DeliverableVersion]:
    """The version with the highest upload sequence, or None."""
    return (
        db.query(DeliverableVersion)
        .filter(DeliverableVersion.deliverable_id == deliverable_id)
        .order_by(DeliverableVersion.upload_seq.desc())
        .first()
    )


def load_rosters(db: Session, deliverable: Deliverable) -> Rosters:
    campaign = deliverable.campaign
    project = campaign.project

    campaign_approvers = {
        row.user_id for row in db.query(CampaignUser.user_id).filter(
            CampaignUser.campaign_id == campaign.id,
            CampaignUser.role == CampaignRole.APPROVER.value,
        )
    }
    project_approvers = {
        row.user_id for row in db.query(ProjectApprover.user_id).filter(
            ProjectApprover.project_id == project.id,
        )
    }
    client_approvers = {
        row.id for row in db.query(Contact.id).filter(
            Contact.client_id == project.client_id,
            Contact.is_client_approver.is_(True),
            Contact.is_active.is_(True),
        )
    }
    return Rosters(
        campaign=frozenset(campaign_approvers),
        project=frozenset(project_approvers),
        client=frozenset(client_approvers),
    )


def load_decisions(db: Session, version_id: UUID) -> List[DecisionRecord]:
    approvals = db.query(Approval).filter(Approval.version_id == version_id).all()
    return [
        DecisionRecord(ApprovalTier(a.tier), a.decider_id, Decision(a.decision))
        for a in approvals
    ]


def rejection_comment(db: Session, version_id: UUID) -> Optional[str]:
    """Comment of the first rejection recorded against a version."""
    rejection = (
        db.query(Approval)
        .filter(Approval.version_id == version_id, Approval.decision == Decision.REJECTED.value)
        .order_by(Approval.created_at.asc())
        .first()
    )
    return rejection.comment if rejection is not None else None


def lock_deliverable(db: Session, deliverable_id: UUID) -> Deliverable:
    return (
        db.query(Deliverable)
        .filter(Deliverable.id == deliverable_id)
        .with_for_update()
        .populate_existing()
        .one()
    )


def advance_to(
    db: Session,
    deliverable: Deliverable,
    target: DeliverableStatus,
    rosters: Rosters,
    version_id: UUID,
) -> None:
    """Step the deliverable through the lifecycle until it reaches ``target``.

    A derived rejection carries the comment of the recorded rejection, never
    the comment of whoever triggered the evaluation.
    """
    project_tier_active = bool(rosters.project)
    while True:
        step = next_transition(
            DeliverableStatus(deliverable.status), target, project_tier_active=project_tier_active
        )
        if step is None:
            return
        comment = rejection_comment(db, version_id) if step == DeliverableTransition.REJECT else None
        transition_entity(db, DELIVERABLE_LIFECYCLE, deliverable, step, comment=comment)


def refresh_review_status(
    db: Session,
    activity: ActivityLogger,
    agency_id: UUID,
    *,
    campaign_id: Optional[UUID] = None,
    project_id: Optional[UUID] = None,
    reason: str,
) -> List[Deliverable]:
    """
    Re-derive the status of every deliverable under review in a campaign or project.

    Called after an approver roster changes. Each deliverable is locked,
    evaluated against the current rosters and the decisions on its latest
    version, and advanced when a tier is now satisfied.

    Returns:
        The deliverables whose status changed
    """
    query = (
        db.query(Deliverable.id)
        .join(Campaign, Deliverable.campaign_id == Campaign.id)
        .filter(Deliverable.status.in_([s.value for s in REVIEW_STAGES]))
    )
    if campaign_id is not None:
        query = query.filter(Campaign.id == campaign_id)
    if project_id is not None:
        query = query.filter(Campaign.project_id == project_id)

    changed = []
    for (deliverable_id,) in query.order_by(Deliverable.id).all():
        deliverable = lock_deliverable(db, deliverable_id)
        current = DeliverableStatus(deliverable.status)
        if current not in REVIEW_STAGES:
            continue
        version = latest_version(db, deliverable.id)
        if version is None:
            continue

        rosters = load_rosters(db, deliverable)
        target = derive_status(rosters, load_decisions(db, version.id), passed=PASSED_TIERS[current])
        before = snapshot(deliverable)
        advance_to(db, deliverable, target, rosters, version.id)
        if deliverable.status == current.value:
            continue

        logger.info("deliverable %s: %s -> %s after %s", deliverable.id, current.value, deliverable.status, reason)
        activity.log(
            agency_id,
            "deliverable",
            deliverable.id,
            "deliverable.status_rederived",
            before=before,
            after=snapshot(deliverable),
            metadata={"reason": reason, "version_id": str(version.id)},
        )
        changed.append(deliverable)
    return changed


class ApprovalService:
    """
    Records approve/reject decisions for deliverables.

    Handles:
    - Tier/stage matching and latest-version checks
    - Roster membership of the decider
    - Quorum evaluation and the resulting lifecycle transitions
    - Activity logging of each decision
    """

    def __init__(self, db: Session, caller: Caller, *, context: Optional[RequestContext] = None):
        self.db = db
        self.caller = caller
        self.gate = AccessGate(db, caller)
        self.activity = ActivityLogger(
            db, actor_id=caller.actor_id, actor_type=caller.actor_type, context=context
        )

    def approve(
        self,
        deliverable_id: UUID,
        version_id: UUID,
        tier: str,
        *,
        comment: Optional[str] = None,
    ) -> Deliverable:
        return self.record_decision(deliverable_id, version_id, tier, Decision.APPROVED, comment=comment)

    def reject(self, deliverable_id: UUID, version_id: UUID, tier: str, *, comment: str) -> Deliverable:
        if not comment or not comment.strip():
            raise ValidationError("A comment is required to reject a deliverable", field="comment")
        return self.record_decision(deliverable_id, version_id, tier, Decision.REJECTED, comment=comment)

    def record_decision(
        self,
        deliverable_id: UUID,
        version_id: UUID,
        tier: str,
        decision: Decision,
        *,
        comment: Optional[str] = None,
    ) -> Deliverable:
        """
        Append one decision and move the deliverable to its derived status.

        Raises:
            ValidationError: Unknown tier, or reject without comment
            NotFoundError: Deliverable or version not visible
            ForbiddenError: Caller lacks the tier permission or is not on its roster
            InvalidStateError: Tier is not reviewing, version is not the latest,
                or the caller already decided on this version
        """
        try:
            tier = ApprovalTier(tier)
        except ValueError:
            raise ValidationError(f"Unknown approval tier: {tier}", field="tier")

        _, grant = self.gate.authorize_deliverable(deliverable_id, TIER_PERMISSIONS[tier])

        deliverable = lock_deliverable(self.db, deliverable_id)
        current = DeliverableStatus(deliverable.status)
        attempted = f"{tier.value}_{decision.value}"

        if current not in TIER_STAGES[tier]:
            raise InvalidStateError(
                f"Deliverable is {current.value}; the {tier.value} tier is not reviewing it",
                current_state=current.value,
                attempted=attempted,
            )

        version = self.db.get(DeliverableVersion, version_id)
        if version is None or version.deliverable_id != deliverable.id:
            raise NotFoundError("deliverable_version", version_id)

        latest = latest_version(self.db, deliverable.id)
        if latest is None or latest.id != version.id:
            raise InvalidStateError(
                "Decisions can only be recorded against the latest version",
                current_state=current.value,
                attempted=attempted,
            )

        rosters = load_rosters(self.db, deliverable)
        decider_id = self.caller.actor_id
        if decider_id not in rosters.for_tier(tier):
            raise ForbiddenError(f"Not an approver at the {tier.value} tier")

        if any(d.tier == tier and d.decider_id == decider_id for d in load_decisions(self.db, version.id)):
            raise InvalidStateError(
                "A decision was already recorded for this version",
                current_state=current.value,
                attempted=attempted,
            )

        before = snapshot(deliverable)

        if current == DeliverableStatus.SUBMITTED:
            transition_entity(self.db, DELIVERABLE_LIFECYCLE, deliverable, DeliverableTransition.BEGIN_REVIEW)

        approval = Approval(
            deliverable_id=deliverable.id,
            version_id=version.id,
            tier=tier.value,
            decision=decision.value,
            decided_by=None if self.caller.is_contact else self.caller.user_id,
            decided_by_contact=self.caller.contact.id if self.caller.is_contact else None,
            comment=comment,
        )
        self.db.add(approval)
        self.db.flush()

        target = derive_status(
            rosters,
            load_decisions(self.db, version.id),
            passed=PASSED_TIERS[current],
        )
        advance_to(self.db, deliverable, target, rosters, version.id)

        logger.info(
            "deliverable %s: %s %s by %s -> %s",
            deliverable.id, tier.value, decision.value, decider_id, deliverable.status,
        )
        self.activity.log(
            grant.agency_id,
            "deliverable",
            deliverable.id,
            f"deliverable.{decision.value}",
            before=before,
            after=snapshot(deliverable),
            metadata={
                "approval_id": str(approval.id),
                "version_id": str(version.id),
                "tier": tier.value,
                "comment": comment,
            },
        )
        return deliverable

    def list_approvals(self, deliverable_id: UUID) -> List[Approval]:
        """Full decision history across all versions, oldest first."""
        self.gate.authorize_deliverable(deliverable_id, "deliverables:read")
        return (
            self.db.query(Approval)
            .filter(Approval.deliverable_id == deliverable_id)
            .order_by(Approval.created_at.asc())
            .all()
        )

