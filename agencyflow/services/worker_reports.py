"""Result reporting from the external social-metrics worker.

The worker authenticates with the internal shared secret, not a user token,
so entries written here carry ``actor_type="system"`` and no actor id.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from agencyflow.core.audit import ActivityLogger, RequestContext, snapshot
from agencyflow.core.errors import InvalidStateError, NotFoundError, ValidationError
from agencyflow.core.lifecycle import (
    JobStatus,
    JobTransition,
    SnapshotTransition,
    SNAPSHOT_LIFECYCLE,
    SOCIAL_JOB_LIFECYCLE,
    transition_entity,
)
from agencyflow.db.models import AnalyticsSnapshot, CreatorSocialPost, SocialDataJob

logger = logging.getLogger(__name__)

# Reported status -> transition that reaches it
JOB_STATUS_TRANSITIONS = {
    JobStatus.RUNNING.value: JobTransition.START,
    JobStatus.DONE.value: JobTransition.COMPLETE,
    JobStatus.FAILED.value: JobTransition.FAIL,
}


def _parse_timestamp(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        raise ValidationError(f"Invalid timestamp: {value}", field="posted_at")


class WorkerReportService:

    def __init__(self, db: Session, *, context: Optional[RequestContext] = None):
        self.db = db
        self.activity = ActivityLogger(db, actor_id=None, actor_type="system", context=context)

    def report_job_status(self, job_id: UUID, status: str, *, error_message: Optional[str] = None) -> SocialDataJob:
        """
        Move a social job along pending -> running -> done | failed.

        Raises:
            ValidationError: Unknown status
            InvalidStateError: The job cannot reach ``status`` from where it is
        """
        job = self._job(job_id)
        transition = JOB_STATUS_TRANSITIONS.get(status)
        if transition is None:
            raise ValidationError(f"Unknown job status: {status}", field="status")

        now = datetime.utcnow()
        values: Dict[str, Any] = {}
        if transition == JobTransition.START:
            values["started_at"] = now
        else:
            values["completed_at"] = now
        if transition == JobTransition.FAIL:
            values["error_message"] = error_message or "Worker reported failure"

        before = snapshot(job)
        transition_entity(self.db, SOCIAL_JOB_LIFECYCLE, job, transition, **values)

        logger.info("social job %s reported %s", job.id, status)
        self.activity.log(
            job.agency_id, "social_data_job", job.id, f"social_job.{status}",
            before=before, after=snapshot(job),
        )
        return job

    def append_social_posts(self, job_id: UUID, posts: Iterable[Dict[str, Any]]) -> int:
        """Store scraped posts for a running job. Returns the number stored."""
        job = self._job(job_id)
        if job.status != JobStatus.RUNNING.value:
            raise InvalidStateError(
                "Posts can only be reported for a running job",
                current_state=job.status,
                attempted="append_posts",
            )

        count = 0
        for post in posts:
            platform_post_id = str(post.get("platform_post_id") or "").strip()
            if not platform_post_id:
                raise ValidationError("Each post needs a platform_post_id", field="platform_post_id")
            self.db.add(CreatorSocialPost(
                creator_id=job.creator_id,
                job_id=job.id,
                platform=job.platform,
                platform_post_id=platform_post_id,
                posted_at=_parse_timestamp(post.get("posted_at")),
                metrics=post.get("metrics"),
                raw=post.get("raw"),
            ))
            count += 1
        self.db.flush()

        self.activity.log(
            job.agency_id, "social_data_job", job.id, "social_job.posts_appended",
            metadata={"count": count},
        )
        return count

    def complete_analytics_snapshot(
        self,
        snapshot_id: UUID,
        *,
        payload: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> AnalyticsSnapshot:
        """
        Record the single result of a snapshot fetch: a payload or an error.

        Raises:
            ValidationError: Neither or both of payload and error given
            InvalidStateError: Snapshot already has a result
        """
        if (payload is None) == (error_message is None):
            raise ValidationError("Report exactly one of payload or error", field="payload")
        record = self.db.get(AnalyticsSnapshot, snapshot_id)
        if record is None:
            raise NotFoundError("analytics_snapshot", snapshot_id)

        before = snapshot(record)
        if payload is not None:
            transition_entity(
                self.db, SNAPSHOT_LIFECYCLE, record, SnapshotTransition.COMPLETE,
                payload=payload, fetched_at=datetime.utcnow(),
            )
        else:
            transition_entity(
                self.db, SNAPSHOT_LIFECYCLE, record, SnapshotTransition.FAIL,
                error_message=error_message,
            )

        logger.info("analytics snapshot %s -> %s", record.id, record.status)
        self.activity.log(
            record.agency_id, "analytics_snapshot", record.id, f"analytics.{record.status}",
            before=before, after=snapshot(record),
        )
        return record

    def _job(self, job_id: UUID) -> SocialDataJob:
        job = self.db.get(SocialDataJob, job_id)
        if job is None:
            raise NotFoundError("social_data_job", job_id)
        return job
