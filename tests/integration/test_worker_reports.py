"""Integration tests for results reported by the social-metrics worker."""

import pytest

from agencyflow.core.errors import InvalidStateError, ValidationError
from agencyflow.db.models import ActivityLogEntry, AnalyticsSnapshot, CreatorSocialPost, SocialDataJob
from agencyflow.services.worker_reports import WorkerReportService

pytestmark = [pytest.mark.db, pytest.mark.integration]


@pytest.fixture
def job(db_session, world):
    record = SocialDataJob(
        agency_id=world.agency.id, creator_id=world.creator.id, platform="instagram",
        job_type="basic_scrape", status="pending", tokens_consumed=1,
    )
    db_session.add(record)
    db_session.flush()
    return record


@pytest.fixture
def pending_snapshot(db_session, world):
    record = AnalyticsSnapshot(
        agency_id=world.agency.id, campaign_creator_id=world.campaign_creator.id,
        analytics_type="pre_campaign", platform="instagram", status="pending", tokens_consumed=1,
    )
    db_session.add(record)
    db_session.flush()
    return record


@pytest.fixture
def reports(db_session):
    return WorkerReportService(db_session)


class TestSocialJobs:
    def test_running_then_done(self, reports, job):
        reports.report_job_status(job.id, "running")
        assert job.status == "running"
        assert job.started_at is not None

        reports.report_job_status(job.id, "done")
        assert job.status == "done"
        assert job.completed_at is not None

    def test_failure_records_message(self, reports, job):
        reports.report_job_status(job.id, "failed", error_message="Profile is private")
        assert job.status == "failed"
        assert job.error_message == "Profile is private"

    def test_done_is_final(self, reports, job):
        reports.report_job_status(job.id, "running")
        reports.report_job_status(job.id, "done")
        with pytest.raises(InvalidStateError):
            reports.report_job_status(job.id, "running")

    def test_unknown_status(self, reports, job):
        with pytest.raises(ValidationError):
            reports.report_job_status(job.id, "paused")

    def test_entries_written_by_system(self, db_session, reports, job):
        reports.report_job_status(job.id, "running")
        entry = db_session.query(ActivityLogEntry).filter_by(entity_id=job.id).one()
        assert entry.actor_type == "system"
        assert entry.actor_id is None
        assert entry.action == "social_job.running"


class TestSocialPosts:
    def test_append_to_running_job(self, db_session, reports, job):
        reports.report_job_status(job.id, "running")
        count = reports.append_social_posts(job.id, [
            {"platform_post_id": "C1", "posted_at": "2026-06-01T10:00:00Z", "metrics": {"likes": 120}},
            {"platform_post_id": "C2", "posted_at": None, "raw": {"caption": "sunset"}},
        ])

        assert count == 2
        posts = db_session.query(CreatorSocialPost).filter_by(job_id=job.id).all()
        assert {p.platform_post_id for p in posts} == {"C1", "C2"}
        assert all(p.creator_id == job.creator_id for p in posts)

    def test_pending_job_refuses_posts(self, reports, job):
        with pytest.raises(InvalidStateError):
            reports.append_social_posts(job.id, [{"platform_post_id": "C1"}])

    def test_post_id_required(self, reports, job):
        reports.report_job_status(job.id, "running")
        with pytest.raises(ValidationError):
            reports.append_social_posts(job.id, [{"metrics": {}}])

    def test_bad_timestamp(self, reports, job):
        reports.report_job_status(job.id, "running")
        with pytest.raises(ValidationError) as exc_info:
            reports.append_social_posts(job.id, [{"platform_post_id": "C1", "posted_at": "yesterday"}])
        assert exc_info.value.field == "posted_at"


class TestAnalyticsSnapshots:
    def test_payload_completes(self, reports, pending_snapshot):
        reports.complete_analytics_snapshot(pending_snapshot.id, payload={"followers": 48000, "er": 3.1})
        assert pending_snapshot.status == "done"
        assert pending_snapshot.payload == {"followers": 48000, "er": 3.1}
        assert pending_snapshot.fetched_at is not None

    def test_error_fails(self, reports, pending_snapshot):
        reports.complete_analytics_snapshot(pending_snapshot.id, error_message="Rate limited")
        assert pending_snapshot.status == "failed"

    def test_single_result(self, reports, pending_snapshot):
        reports.complete_analytics_snapshot(pending_snapshot.id, payload={"followers": 1})
        with pytest.raises(InvalidStateError):
            reports.complete_analytics_snapshot(pending_snapshot.id, payload={"followers": 2})

    @pytest.mark.parametrize("kwargs", [{}, {"payload": {"a": 1}, "error_message": "both"}])
    def test_exactly_one_of_payload_or_error(self, reports, pending_snapshot, kwargs):
        with pytest.raises(ValidationError):
            reports.complete_analytics_snapshot(pending_snapshot.id, **kwargs)
