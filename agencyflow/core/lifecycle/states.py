"""Lifecycle states and transitions for every stateful entity.

Campaign:

    draft ──activate──► active ──submit_for_review──► in_review ──approve──► approved
                          ▲                              │                     │
                          └───────────reject─────────────┘                 complete
                                                                               │
                                               archived ◄──archive── completed ◄┘

Deliverable:

    pending ─┐                                  ┌──advance_to_project──► pending_project_approval
             ├─submit─► submitted ─begin_review─► internal_review              │
    rejected ┘                                  └──advance_to_client──► client_review ◄──┘
       ▲                                                                        │
       └──────────── reject (from any review stage, comment required) ◄─────────┤
                                                                            approve
                                                                                ▼
                                                                            approved

Each table is an allow-list: a transition not listed from the current state
is an invalid-state error.
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, NamedTuple, Optional, Set


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class CampaignTransition(str, Enum):
    ACTIVATE = "activate"
    SUBMIT_FOR_REVIEW = "submit_for_review"
    APPROVE = "approve"
    REJECT = "reject"
    COMPLETE = "complete"
    ARCHIVE = "archive"


class DeliverableStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    INTERNAL_REVIEW = "internal_review"
    PENDING_PROJECT_APPROVAL = "pending_project_approval"
    CLIENT_REVIEW = "client_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class DeliverableTransition(str, Enum):
    SUBMIT = "submit"
    BEGIN_REVIEW = "begin_review"
    ADVANCE_TO_PROJECT = "advance_to_project"
    ADVANCE_TO_CLIENT = "advance_to_client"
    APPROVE = "approve"
    REJECT = "reject"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


class PaymentTransition(str, Enum):
    START_PROCESSING = "start_processing"
    MARK_PAID = "mark_paid"
    MARK_FAILED = "mark_failed"
    RETRY = "retry"


class JobStatus(str, Enum):
    """Social data job status, as reported by the external worker."""
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class JobTransition(str, Enum):
    START = "start"
    COMPLETE = "complete"
    FAIL = "fail"


class SnapshotStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


class SnapshotTransition(str, Enum):
    COMPLETE = "complete"
    FAIL = "fail"


class TransitionRule(NamedTuple):
    """Defines a valid state transition."""
    from_state: Enum
    to_state: Enum
    transition: Enum
    requires_permission: Optional[str] = None
    requires_comment: bool = False


class Lifecycle:
    """
    Allow-list of transitions for one entity type.

    Builds the same lookup tables for every entity: the valid transitions per
    state and the rule for each (state, transition) pair.
    """

    def __init__(
        self,
        entity_type: str,
        rules: Iterable[TransitionRule],
        *,
        terminal_states: Iterable[Enum] = (),
    ):
        self.entity_type = entity_type
        self.rules = list(rules)
        self.terminal_states: FrozenSet[Enum] = frozenset(terminal_states)
        self.valid_transitions: Dict[Enum, Set[Enum]] = {}
        self.transition_targets: Dict[tuple, TransitionRule] = {}

        for rule in self.rules:
            self.valid_transitions.setdefault(rule.from_state, set()).add(rule.transition)
            self.transition_targets[(rule.from_state, rule.transition)] = rule

        # Enum types come from the first rule
        first = self.rules[0]
        self.state_type = type(first.from_state)
        self.transition_type = type(first.transition)

    def can_transition(self, from_state: Enum, transition: Enum) -> bool:
        return transition in self.valid_transitions.get(from_state, set())

    def get_transition_rule(self, from_state: Enum, transition: Enum) -> Optional[TransitionRule]:
        return self.transition_targets.get((from_state, transition))

    def get_target_state(self, from_state: Enum, transition: Enum) -> Optional[Enum]:
        rule = self.get_transition_rule(from_state, transition)
        return rule.to_state if rule else None


CAMPAIGN_TRANSITION_PERMISSION = "campaigns:transition"

CAMPAIGN_LIFECYCLE = Lifecycle(
    "campaign",
    [
        TransitionRule(CampaignStatus.DRAFT, CampaignStatus.ACTIVE, CampaignTransition.ACTIVATE,
                       CAMPAIGN_TRANSITION_PERMISSION),
        TransitionRule(CampaignStatus.ACTIVE, CampaignStatus.IN_REVIEW, CampaignTransition.SUBMIT_FOR_REVIEW,
                       CAMPAIGN_TRANSITION_PERMISSION),
        TransitionRule(CampaignStatus.IN_REVIEW, CampaignStatus.APPROVED, CampaignTransition.APPROVE,
                       CAMPAIGN_TRANSITION_PERMISSION),
        TransitionRule(CampaignStatus.IN_REVIEW, CampaignStatus.ACTIVE, CampaignTransition.REJECT,
                       CAMPAIGN_TRANSITION_PERMISSION),
        TransitionRule(CampaignStatus.APPROVED, CampaignStatus.COMPLETED, CampaignTransition.COMPLETE,
                       CAMPAIGN_TRANSITION_PERMISSION),
        TransitionRule(CampaignStatus.COMPLETED, CampaignStatus.ARCHIVED, CampaignTransition.ARCHIVE,
                       CAMPAIGN_TRANSITION_PERMISSION),
    ],
    terminal_states=[CampaignStatus.ARCHIVED],
)

DELIVERABLE_LIFECYCLE = Lifecycle(
    "deliverable",
    [
        TransitionRule(DeliverableStatus.PENDING, DeliverableStatus.SUBMITTED, DeliverableTransition.SUBMIT),
        TransitionRule(DeliverableStatus.REJECTED, DeliverableStatus.SUBMITTED, DeliverableTransition.SUBMIT),
        TransitionRule(DeliverableStatus.SUBMITTED, DeliverableStatus.INTERNAL_REVIEW,
                       DeliverableTransition.BEGIN_REVIEW),
        TransitionRule(DeliverableStatus.INTERNAL_REVIEW, DeliverableStatus.PENDING_PROJECT_APPROVAL,
                       DeliverableTransition.ADVANCE_TO_PROJECT),
        TransitionRule(DeliverableStatus.INTERNAL_REVIEW, DeliverableStatus.CLIENT_REVIEW,
                       DeliverableTransition.ADVANCE_TO_CLIENT),
        TransitionRule(DeliverableStatus.PENDING_PROJECT_APPROVAL, DeliverableStatus.CLIENT_REVIEW,
                       DeliverableTransition.ADVANCE_TO_CLIENT),
        TransitionRule(DeliverableStatus.CLIENT_REVIEW, DeliverableStatus.APPROVED, DeliverableTransition.APPROVE),
        TransitionRule(DeliverableStatus.INTERNAL_REVIEW, DeliverableStatus.REJECTED, DeliverableTransition.REJECT,
                       requires_comment=True),
        TransitionRule(DeliverableStatus.PENDING_PROJECT_APPROVAL, DeliverableStatus.REJECTED,
                       DeliverableTransition.REJECT, requires_comment=True),
        TransitionRule(DeliverableStatus.CLIENT_REVIEW, DeliverableStatus.REJECTED, DeliverableTransition.REJECT,
                       requires_comment=True),
    ],
    terminal_states=[DeliverableStatus.APPROVED],
)

PAYMENT_LIFECYCLE = Lifecycle(
    "payment",
    [
        TransitionRule(PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentTransition.START_PROCESSING,
                       "payments:update"),
        TransitionRule(PaymentStatus.PENDING, PaymentStatus.PAID, PaymentTransition.MARK_PAID, "payments:update"),
        TransitionRule(PaymentStatus.PROCESSING, PaymentStatus.PAID, PaymentTransition.MARK_PAID, "payments:update"),
        TransitionRule(PaymentStatus.PENDING, PaymentStatus.FAILED, PaymentTransition.MARK_FAILED, "payments:update"),
        TransitionRule(PaymentStatus.PROCESSING, PaymentStatus.FAILED, PaymentTransition.MARK_FAILED,
                       "payments:update"),
        TransitionRule(PaymentStatus.FAILED, PaymentStatus.PENDING, PaymentTransition.RETRY, "payments:update"),
    ],
    terminal_states=[PaymentStatus.PAID],
)

SOCIAL_JOB_LIFECYCLE = Lifecycle(
    "social_data_job",
    [
        TransitionRule(JobStatus.PENDING, JobStatus.RUNNING, JobTransition.START),
        TransitionRule(JobStatus.RUNNING, JobStatus.DONE, JobTransition.COMPLETE),
        TransitionRule(JobStatus.RUNNING, JobStatus.FAILED, JobTransition.FAIL),
        TransitionRule(JobStatus.PENDING, JobStatus.FAILED, JobTransition.FAIL),
    ],
    terminal_states=[JobStatus.DONE, JobStatus.FAILED],
)

SNAPSHOT_LIFECYCLE = Lifecycle(
    "analytics_snapshot",
    [
        TransitionRule(SnapshotStatus.PENDING, SnapshotStatus.DONE, SnapshotTransition.COMPLETE),
        TransitionRule(SnapshotStatus.PENDING, SnapshotStatus.FAILED, SnapshotTransition.FAIL),
    ],
    terminal_states=[SnapshotStatus.DONE, SnapshotStatus.FAILED],
)

# Deliverable stages in which an approval tier is collecting decisions
REVIEW_STATES: Set[DeliverableStatus] = {
    DeliverableStatus.SUBMITTED,
    DeliverableStatus.INTERNAL_REVIEW,
    DeliverableStatus.PENDING_PROJECT_APPROVAL,
    DeliverableStatus.CLIENT_REVIEW,
}
