"""Quorum rules for tiered deliverable approval.

Pure functions: given the approver rosters and the decisions recorded for the
latest version, derive the status the deliverable should be in.

Tier rules:
- campaign: every campaign approver must approve the same version
- project:  any one project approver suffices; an empty roster skips the tier
- client:   any one client approver contact suffices
- any rejection at any tier rejects immediately
"""

from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Set
from uuid import UUID

from agencyflow.core.lifecycle.states import DeliverableStatus, DeliverableTransition


class ApprovalTier(str, Enum):
    CAMPAIGN = "campaign"
    PROJECT = "project"
    CLIENT = "client"


class Decision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class QuorumRule(str, Enum):
    ALL = "all"
    ANY = "any"


TIER_QUORUM: Dict[ApprovalTier, QuorumRule] = {
    ApprovalTier.CAMPAIGN: QuorumRule.ALL,
    ApprovalTier.PROJECT: QuorumRule.ANY,
    ApprovalTier.CLIENT: QuorumRule.ANY,
}

# Deliverable stage in which each tier records decisions. A campaign-tier
# decision on a ``submitted`` deliverable opens internal review first.
TIER_STAGES: Dict[ApprovalTier, Set[DeliverableStatus]] = {
    ApprovalTier.CAMPAIGN: {DeliverableStatus.SUBMITTED, DeliverableStatus.INTERNAL_REVIEW},
    ApprovalTier.PROJECT: {DeliverableStatus.PENDING_PROJECT_APPROVAL},
    ApprovalTier.CLIENT: {DeliverableStatus.CLIENT_REVIEW},
}

# Tiers already cleared once a deliverable has reached a stage
PASSED_TIERS: Dict[DeliverableStatus, tuple] = {
    DeliverableStatus.SUBMITTED: (),
    DeliverableStatus.INTERNAL_REVIEW: (),
    DeliverableStatus.PENDING_PROJECT_APPROVAL: (ApprovalTier.CAMPAIGN,),
    DeliverableStatus.CLIENT_REVIEW: (ApprovalTier.CAMPAIGN, ApprovalTier.PROJECT),
}

# Permission a decider needs at each tier, on top of roster membership
TIER_PERMISSIONS: Dict[ApprovalTier, str] = {
    ApprovalTier.CAMPAIGN: "internal_review:approve",
    ApprovalTier.PROJECT: "project_review:approve",
    ApprovalTier.CLIENT: "client_review:approve",
}


class DecisionRecord(NamedTuple):
    """One recorded decision, reduced to what quorum evaluation needs."""
    tier: ApprovalTier
    decider_id: UUID
    decision: Decision


class Rosters(NamedTuple):
    """Eligible deciders per tier."""
    campaign: frozenset
    project: frozenset
    client: frozenset

    def for_tier(self, tier: ApprovalTier) -> frozenset:
        return getattr(self, tier.value)


def tier_satisfied(tier: ApprovalTier, roster: Iterable[UUID], decisions: Iterable[DecisionRecord]) -> bool:
    """True when the roster's approvals for ``tier`` meet the tier's quorum rule.

    Decisions from deciders no longer on the roster do not count.
    """
    roster = set(roster)
    if not roster:
        return False
    approvers = {
        d.decider_id for d in decisions
        if d.tier == tier and d.decision == Decision.APPROVED and d.decider_id in roster
    }
    if TIER_QUORUM[tier] == QuorumRule.ALL:
        return roster <= approvers
    return bool(approvers)


def derive_status(
    rosters: Rosters,
    decisions: List[DecisionRecord],
    *,
    passed: Iterable[ApprovalTier] = (),
) -> DeliverableStatus:
    """
    Replay the decisions for one version and return the resulting status.

    Only meaningful once the deliverable is under review; callers pass the
    decisions for the latest version only. Tiers in ``passed`` were already
    cleared and are not re-evaluated, so roster changes never reopen them.
    """
    passed = set(passed)
    if any(d.decision == Decision.REJECTED for d in decisions):
        return DeliverableStatus.REJECTED

    if ApprovalTier.CAMPAIGN not in passed and not tier_satisfied(
        ApprovalTier.CAMPAIGN, rosters.campaign, decisions
    ):
        return DeliverableStatus.INTERNAL_REVIEW

    if ApprovalTier.PROJECT not in passed and rosters.project and not tier_satisfied(
        ApprovalTier.PROJECT, rosters.project, decisions
    ):
        return DeliverableStatus.PENDING_PROJECT_APPROVAL

    if not tier_satisfied(ApprovalTier.CLIENT, rosters.client, decisions):
        return DeliverableStatus.CLIENT_REVIEW

    return DeliverableStatus.APPROVED


_STAGE_ORDER = [
    DeliverableStatus.INTERNAL_REVIEW,
    DeliverableStatus.PENDING_PROJECT_APPROVAL,
    DeliverableStatus.CLIENT_REVIEW,
    DeliverableStatus.APPROVED,
]


def next_transition(
    current: DeliverableStatus,
    target: DeliverableStatus,
    *,
    project_tier_active: bool,
) -> Optional[DeliverableTransition]:
    """
    Single lifecycle step that moves ``current`` towards ``target``.

    Returns None when no step is needed. Never moves backwards through the
    review stages; rejection is reachable from any of them.
    """
    if current == target:
        return None
    if target == DeliverableStatus.REJECTED:
        return DeliverableTransition.REJECT
    if current == DeliverableStatus.SUBMITTED:
        return DeliverableTransition.BEGIN_REVIEW
    if current not in _STAGE_ORDER or target not in _STAGE_ORDER:
        return None
    if _STAGE_ORDER.index(target) <= _STAGE_ORDER.index(current):
        return None

    if current == DeliverableStatus.INTERNAL_REVIEW:
        if project_tier_active:
            return DeliverableTransition.ADVANCE_TO_PROJECT
        return DeliverableTransition.ADVANCE_TO_CLIENT
    if current == DeliverableStatus.PENDING_PROJECT_APPROVAL:
        return DeliverableTransition.ADVANCE_TO_CLIENT
    if current == DeliverableStatus.CLIENT_REVIEW:
        return DeliverableTransition.APPROVE
    return None
