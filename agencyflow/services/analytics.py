"""Credit-metered fetches: pre-campaign analytics and social profile scrapes.

Each request debits the agency's balance first, then creates the work record
and its outbox message inside a savepoint. If either insert fails the debit
is refunded and the error propagates, so a charge is never left without the
record it paid for.
"""

import logging
from typing import NamedTuple
from uuid import UUID

from agencyflow.core.audit import snapshot
from agencyflow.core.config import get_settings
from agencyflow.core.errors import NotFoundError, ValidationError
from agencyflow.core.ledger import CreditLedger
from agencyflow.core.lifecycle import JobStatus, SnapshotStatus
from agencyflow.db.models import AnalyticsSnapshot, SocialDataJob
from .base import ScopedService, require_campaign_editable
from .outbox import OutboxService, TOPIC_ANALYTICS_FETCH, TOPIC_SOCIAL_FETCH

logger = logging.getLogger(__name__)

FETCH_PLATFORMS = ("instagram", "youtube")
JOB_TYPES = ("basic_scrape", "enriched_profile")


class MeteredResult(NamedTuple):
    """A metered record, the outbox message announcing it and the balance left."""
    record: object
    message_id: UUID
    new_balance: int


def _check_platform(platform: str) -> str:
    if platform not in FETCH_PLATFORMS:
        raise ValidationError(f"Unsupported platform: {platform}", field="platform")
    return platform


class AnalyticsService(ScopedService):

    def __init__(self, db, caller, *, context=None):
        super().__init__(db, caller, context=context)
        self.ledger = CreditLedger(db)
        self.outbox = OutboxService(db)
        self.cost = get_settings().metered_operation_cost

    def fetch_pre_campaign_analytics(self, campaign_creator_id: UUID, platform: str) -> MeteredResult:
        """
        Charge one fetch and queue a pre-campaign analytics snapshot.

        Raises:
            ValidationError: Unsupported platform, or the creator has no
                handle on it
            InsufficientCreditsError: Balance below the fetch cost; nothing
                was created
        """
        campaign_creator, grant = self.gate.authorize_campaign_creator(campaign_creator_id, "analytics:fetch")
        require_campaign_editable(campaign_creator.campaign, "fetch_analytics")
        _check_platform(platform)
        if not campaign_creator.creator.handle_for(platform):
            raise ValidationError(f"Creator has no {platform} handle", field="platform")

        def create():
            record = AnalyticsSnapshot(
                agency_id=grant.agency_id,
                campaign_creator_id=campaign_creator.id,
                analytics_type="pre_campaign",
                platform=platform,
                status=SnapshotStatus.PENDING.value,
                tokens_consumed=self.cost,
                triggered_by=self.caller.user_id,
            )
            self.db.add(record)
            self.db.flush()
            message = self.outbox.enqueue(
                grant.agency_id,
                TOPIC_ANALYTICS_FETCH,
                {"jobId": str(record.id)},
                idempotency_key=str(record.id),
            )
            return record, message

        (record, message), new_balance = self.ledger.run_metered(grant.agency_id, self.cost, create)

        logger.info("analytics snapshot %s queued for agency %s, balance %s", record.id, grant.agency_id, new_balance)
        self.activity.log(
            grant.agency_id, "analytics_snapshot", record.id, "analytics.fetch_requested",
            after=snapshot(record),
            metadata={"tokensConsumed": self.cost, "newBalance": new_balance},
        )
        return MeteredResult(record, message.id, new_balance)

    def trigger_social_fetch(self, creator_id: UUID, platform: str, job_type: str) -> MeteredResult:
        """Charge one fetch and queue a social profile scrape for a creator."""
        creator, grant = self.gate.authorize_creator(creator_id, "analytics:fetch")
        _check_platform(platform)
        if job_type not in JOB_TYPES:
            raise ValidationError(f"Unknown job type: {job_type}", field="job_type")
        if not creator.handle_for(platform):
            raise ValidationError(f"Creator has no {platform} handle", field="platform")

        def create():
            record = SocialDataJob(
                agency_id=grant.agency_id,
                creator_id=creator.id,
                platform=platform,
                job_type=job_type,
                status=JobStatus.PENDING.value,
                tokens_consumed=self.cost,
                triggered_by=self.caller.user_id,
            )
            self.db.add(record)
            self.db.flush()
            message = self.outbox.enqueue(
                grant.agency_id,
                TOPIC_SOCIAL_FETCH,
                {"jobId": str(record.id)},
                idempotency_key=str(record.id),
            )
            return record, message

        (record, message), new_balance = self.ledger.run_metered(grant.agency_id, self.cost, create)

        logger.info("social job %s queued for agency %s, balance %s", record.id, grant.agency_id, new_balance)
        self.activity.log(
            grant.agency_id, "social_data_job", record.id, "social.fetch_requested",
            after=snapshot(record),
            metadata={"tokensConsumed": self.cost, "newBalance": new_balance},
        )
        return MeteredResult(record, message.id, new_balance)

    # Polling

    def get_snapshot(self, snapshot_id: UUID) -> AnalyticsSnapshot:
        record = self.db.get(AnalyticsSnapshot, snapshot_id)
        if record is None:
            raise NotFoundError("analytics_snapshot", snapshot_id)
        self.gate.authorize_campaign_creator(record.campaign_creator_id, "analytics:read")
        return record

    def get_job(self, job_id: UUID) -> SocialDataJob:
        record = self.db.get(SocialDataJob, job_id)
        if record is None:
            raise NotFoundError("social_data_job", job_id)
        self.gate.authorize_creator(record.creator_id, "analytics:read")
        return record
