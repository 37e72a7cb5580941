"""Tests for tier quorum evaluation."""

from uuid import uuid4

import pytest

from agencyflow.core.approval import ApprovalTier, Decision, DecisionRecord, Rosters, derive_status, tier_satisfied
from agencyflow.core.approval.quorum import PASSED_TIERS, next_transition
from agencyflow.core.lifecycle import DeliverableStatus, DeliverableTransition


A, B, P, C = uuid4(), uuid4(), uuid4(), uuid4()


def approve(tier, decider):
    return DecisionRecord(tier, decider, Decision.APPROVED)


def reject(tier, decider):
    return DecisionRecord(tier, decider, Decision.REJECTED)


@pytest.fixture
def rosters():
    return Rosters(campaign=frozenset({A, B}), project=frozenset({P}), client=frozenset({C}))


class TestTierSatisfied:
    """Quorum rules per tier."""

    def test_campaign_tier_needs_everyone(self):
        assert not tier_satisfied(ApprovalTier.CAMPAIGN, {A, B}, [approve(ApprovalTier.CAMPAIGN, A)])
        assert tier_satisfied(
            ApprovalTier.CAMPAIGN, {A, B},
            [approve(ApprovalTier.CAMPAIGN, A), approve(ApprovalTier.CAMPAIGN, B)],
        )

    def test_any_tier_needs_one(self):
        assert tier_satisfied(ApprovalTier.CLIENT, {C, uuid4()}, [approve(ApprovalTier.CLIENT, C)])

    def test_empty_roster_never_satisfied(self):
        assert not tier_satisfied(ApprovalTier.CLIENT, set(), [approve(ApprovalTier.CLIENT, C)])

    def test_off_roster_decisions_ignored(self):
        assert not tier_satisfied(ApprovalTier.PROJECT, {P}, [approve(ApprovalTier.PROJECT, uuid4())])

    def test_decisions_from_other_tiers_ignored(self):
        assert not tier_satisfied(ApprovalTier.PROJECT, {P}, [approve(ApprovalTier.CAMPAIGN, P)])


class TestDeriveStatus:
    """Replaying decisions for a version."""

    def test_no_decisions_is_internal_review(self, rosters):
        assert derive_status(rosters, []) == DeliverableStatus.INTERNAL_REVIEW

    def test_partial_campaign_quorum_stays_internal(self, rosters):
        decisions = [approve(ApprovalTier.CAMPAIGN, A)]
        assert derive_status(rosters, decisions) == DeliverableStatus.INTERNAL_REVIEW

    def test_campaign_quorum_moves_to_project(self, rosters):
        decisions = [approve(ApprovalTier.CAMPAIGN, A), approve(ApprovalTier.CAMPAIGN, B)]
        assert derive_status(rosters, decisions) == DeliverableStatus.PENDING_PROJECT_APPROVAL

    def test_empty_project_roster_skips_tier(self, rosters):
        rosters = rosters._replace(project=frozenset())
        decisions = [approve(ApprovalTier.CAMPAIGN, A), approve(ApprovalTier.CAMPAIGN, B)]
        assert derive_status(rosters, decisions) == DeliverableStatus.CLIENT_REVIEW

    def test_empty_client_roster_waits(self, rosters):
        rosters = rosters._replace(client=frozenset())
        decisions = [
            approve(ApprovalTier.CAMPAIGN, A),
            approve(ApprovalTier.CAMPAIGN, B),
            approve(ApprovalTier.PROJECT, P),
        ]
        assert derive_status(rosters, decisions) == DeliverableStatus.CLIENT_REVIEW

    def test_all_tiers_approve(self, rosters):
        decisions = [
            approve(ApprovalTier.CAMPAIGN, A),
            approve(ApprovalTier.CAMPAIGN, B),
            approve(ApprovalTier.PROJECT, P),
            approve(ApprovalTier.CLIENT, C),
        ]
        assert derive_status(rosters, decisions) == DeliverableStatus.APPROVED

    def test_single_rejection_wins(self, rosters):
        decisions = [
            approve(ApprovalTier.CAMPAIGN, A),
            approve(ApprovalTier.CAMPAIGN, B),
            reject(ApprovalTier.PROJECT, P),
        ]
        assert derive_status(rosters, decisions) == DeliverableStatus.REJECTED

    def test_passed_tiers_not_reopened_by_roster_growth(self, rosters):
        """A new campaign approver added after the tier cleared does not pull the deliverable back."""
        rosters = rosters._replace(campaign=frozenset({A, B, uuid4()}))
        decisions = [approve(ApprovalTier.CAMPAIGN, A), approve(ApprovalTier.CAMPAIGN, B)]
        passed = PASSED_TIERS[DeliverableStatus.PENDING_PROJECT_APPROVAL]
        assert derive_status(rosters, decisions, passed=passed) == DeliverableStatus.PENDING_PROJECT_APPROVAL


class TestNextTransition:
    """Stepping towards the derived status."""

    def test_no_step_when_already_there(self):
        assert next_transition(
            DeliverableStatus.CLIENT_REVIEW, DeliverableStatus.CLIENT_REVIEW, project_tier_active=True
        ) is None

    def test_submitted_begins_review(self):
        assert next_transition(
            DeliverableStatus.SUBMITTED, DeliverableStatus.PENDING_PROJECT_APPROVAL, project_tier_active=True
        ) == DeliverableTransition.BEGIN_REVIEW

    def test_reject_from_any_review_stage(self):
        for current in (DeliverableStatus.INTERNAL_REVIEW, DeliverableStatus.CLIENT_REVIEW):
            assert next_transition(
                current, DeliverableStatus.REJECTED, project_tier_active=False
            ) == DeliverableTransition.REJECT

    def test_internal_review_routes_by_project_tier(self):
        assert next_transition(
            DeliverableStatus.INTERNAL_REVIEW, DeliverableStatus.APPROVED, project_tier_active=True
        ) == DeliverableTransition.ADVANCE_TO_PROJECT
        assert next_transition(
            DeliverableStatus.INTERNAL_REVIEW, DeliverableStatus.APPROVED, project_tier_active=False
        ) == DeliverableTransition.ADVANCE_TO_CLIENT

    def test_never_moves_backwards(self):
        assert next_transition(
            DeliverableStatus.CLIENT_REVIEW, DeliverableStatus.INTERNAL_REVIEW, project_tier_active=True
        ) is None

    def test_client_review_approves(self):
        assert next_transition(
            DeliverableStatus.CLIENT_REVIEW, DeliverableStatus.APPROVED, project_tier_active=False
        ) == DeliverableTransition.APPROVE
