"""Lifecycle state machines for campaigns, deliverables, payments and fetch jobs."""

from .states import (
    CampaignStatus,
    CampaignTransition,
    DeliverableStatus,
    DeliverableTransition,
    PaymentStatus,
    PaymentTransition,
    JobStatus,
    JobTransition,
    SnapshotStatus,
    SnapshotTransition,
    TransitionRule,
    Lifecycle,
    CAMPAIGN_LIFECYCLE,
    DELIVERABLE_LIFECYCLE,
    PAYMENT_LIFECYCLE,
    SOCIAL_JOB_LIFECYCLE,
    SNAPSHOT_LIFECYCLE,
)
from .machine import StateMachine, apply_transition, transition_entity

__all__ = [
    "CampaignStatus",
    "CampaignTransition",
    "DeliverableStatus",
    "DeliverableTransition",
    "PaymentStatus",
    "PaymentTransition",
    "JobStatus",
    "JobTransition",
    "SnapshotStatus",
    "SnapshotTransition",
    "TransitionRule",
    "Lifecycle",
    "CAMPAIGN_LIFECYCLE",
    "DELIVERABLE_LIFECYCLE",
    "PAYMENT_LIFECYCLE",
    "SOCIAL_JOB_LIFECYCLE",
    "SNAPSHOT_LIFECYCLE",
    "StateMachine",
    "apply_transition",
    "transition_entity",
]
