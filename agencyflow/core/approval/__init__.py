"""Deliverable approval: tier quorum rules and the decision-recording service."""

from .quorum import ApprovalTier, Decision, DecisionRecord, Rosters, derive_status, tier_satisfied
from .service import (
    ApprovalService,
    latest_version,
    load_rosters,
    lock_deliverable,
    refresh_review_status,
)

__all__ = [
    "ApprovalTier",
    "Decision",
    "DecisionRecord",
    "Rosters",
    "derive_status",
    "tier_satisfied",
    "ApprovalService",
    "latest_version",
    "load_rosters",
    "lock_deliverable",
    "refresh_review_status",
]
