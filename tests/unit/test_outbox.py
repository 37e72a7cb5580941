"""Tests for outbox delivery to the social-metrics worker."""

from datetime import datetime, timedelta
from uuid import uuid4

import httpx
import pytest

from agencyflow.core.config import get_settings
from agencyflow.core.errors import NotFoundError
from agencyflow.services.outbox import (
    TOPIC_SOCIAL_FETCH,
    OutboxService,
    schedule_delivery,
    topic_url,
)

from tests.factories import create_agency

pytestmark = pytest.mark.db


def mock_client(status_code=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json={"ok": status_code < 400})

    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def outbox(db_session):
    return OutboxService(db_session)


@pytest.fixture
def message(db_session, outbox):
    agency = create_agency(db_session)
    key = str(uuid4())
    return outbox.enqueue(agency.id, TOPIC_SOCIAL_FETCH, {"job_id": key, "handle": "sunny.days"}, key)


class TestDeliver:
    """Posting a message and recording the outcome."""

    def test_success_marks_sent(self, outbox, message):
        seen = []
        result = outbox.deliver(message.id, client=mock_client(seen=seen))

        assert result.status == "sent"
        assert message.status == "sent"
        assert message.attempts == 1
        assert message.sent_at is not None

        request = seen[0]
        assert str(request.url) == get_settings().social_fetch_url
        assert request.headers["X-Internal-Secret"] == get_settings().internal_api_secret
        assert request.headers["Idempotency-Key"] == message.idempotency_key

    def test_server_error_is_retryable(self, outbox, message):
        result = outbox.deliver(message.id, client=mock_client(500))

        assert result.retryable is True
        assert result.status == "pending"
        assert message.attempts == 1
        assert "HTTPStatusError" in message.last_error

    def test_exhausted_attempts_fail(self, db_session, outbox, message):
        message.attempts = get_settings().outbox_max_attempts - 1
        db_session.flush()

        result = outbox.deliver(message.id, client=mock_client(503))

        assert result.retryable is False
        assert message.status == "failed"

    def test_connection_error(self, outbox, message):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        result = outbox.deliver(message.id, client=client)

        assert result.retryable is True
        assert message.last_error.startswith("ConnectError")

    def test_sent_messages_are_skipped(self, outbox, message):
        outbox.deliver(message.id, client=mock_client())
        seen = []

        result = outbox.deliver(message.id, client=mock_client(seen=seen))

        assert result.status == "sent"
        assert seen == []
        assert message.attempts == 1

    def test_unknown_message(self, outbox):
        with pytest.raises(NotFoundError):
            outbox.deliver(uuid4(), client=mock_client())


class TestPendingIds:
    def test_oldest_first_and_grace_period(self, db_session, outbox, message):
        agency_id = message.agency_id
        old_key = str(uuid4())
        old = outbox.enqueue(agency_id, TOPIC_SOCIAL_FETCH, {"job_id": old_key}, old_key)
        old.created_at = datetime.utcnow() - timedelta(minutes=10)
        db_session.flush()

        assert outbox.pending_ids(10) == [old.id, message.id]
        assert outbox.pending_ids(10, older_than=timedelta(seconds=30)) == [old.id]
        assert outbox.pending_ids(1) == [old.id]

    def test_sent_excluded(self, outbox, message):
        outbox.deliver(message.id, client=mock_client())
        assert message.id not in outbox.pending_ids(10)


class TestRouting:
    def test_unknown_topic(self):
        with pytest.raises(ValueError):
            topic_url("newsletter")

    def test_schedule_is_noop_when_disabled(self):
        assert get_settings().outbox_dispatch_enabled is False
        assert schedule_delivery([uuid4()]) is None
