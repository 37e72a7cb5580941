"""Transactional outbox for the social-metrics worker.

Messages are inserted in the same transaction as the job or snapshot they
announce. After commit the API schedules a Celery delivery per message; the
periodic sweep picks up anything whose scheduling was lost. Delivery is
at-least-once and keyed on the job id, so the worker may see duplicates.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, NamedTuple, Optional
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from agencyflow.core.config import get_settings
from agencyflow.core.errors import NotFoundError
from agencyflow.db.models import OutboxMessage

logger = logging.getLogger(__name__)

TOPIC_SOCIAL_FETCH = "social_fetch"
TOPIC_ANALYTICS_FETCH = "analytics_fetch"

STATUS_PENDING = "pending"
STATUS_SENT = "sent"
STATUS_FAILED = "failed"


class DeliveryResult(NamedTuple):
    message_id: UUID
    status: str
    retryable: bool = False
    error: Optional[str] = None


def topic_url(topic: str) -> str:
    settings = get_settings()
    urls = {
        TOPIC_SOCIAL_FETCH: settings.social_fetch_url,
        TOPIC_ANALYTICS_FETCH: settings.analytics_fetch_url,
    }
    try:
        return urls[topic]
    except KeyError:
        raise ValueError(f"No worker URL configured for topic {topic}")


class OutboxService:
    """Writes and delivers outbox messages on one session."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def enqueue(self, agency_id: UUID, topic: str, payload: Dict[str, Any], idempotency_key: str) -> OutboxMessage:
        message = OutboxMessage(
            agency_id=agency_id,
            topic=topic,
            payload=payload,
            idempotency_key=idempotency_key,
            status=STATUS_PENDING,
        )
        self.db.add(message)
        self.db.flush()
        return message

    def pending_ids(self, limit: int, *, older_than: Optional[timedelta] = None) -> List[UUID]:
        """Pending messages, oldest first. ``older_than`` skips ones just scheduled."""
        query = self.db.query(OutboxMessage.id).filter(OutboxMessage.status == STATUS_PENDING)
        if older_than is not None:
            query = query.filter(OutboxMessage.created_at < datetime.utcnow() - older_than)
        rows = query.order_by(OutboxMessage.created_at.asc()).limit(limit).all()
        return [row.id for row in rows]

    def deliver(self, message_id: UUID, *, client: Optional[httpx.Client] = None) -> DeliveryResult:
        """
        POST one message to its worker.

        Sent messages are skipped. A failed POST bumps ``attempts`` and marks the
        message failed once ``outbox_max_attempts`` is reached; until then the
        result is retryable. The caller commits.
        """
        message = (
            self.db.query(OutboxMessage)
            .filter(OutboxMessage.id == message_id)
            .with_for_update()
            .first()
        )
        if message is None:
            raise NotFoundError("outbox_message", message_id)
        if message.status != STATUS_PENDING:
            logger.debug("outbox message %s already %s", message.id, message.status)
            return DeliveryResult(message.id, message.status)

        message.attempts = (message.attempts or 0) + 1
        owns_client = client is None
        if owns_client:
            client = httpx.Client(timeout=self.settings.outbox_request_timeout)
        try:
            response = client.post(
                topic_url(message.topic),
                json=message.payload,
                headers={
                    "X-Internal-Secret": self.settings.internal_api_secret,
                    "Idempotency-Key": message.idempotency_key,
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            message.last_error = f"{exc.__class__.__name__}: {exc}"[:1000]
            exhausted = message.attempts >= self.settings.outbox_max_attempts
            if exhausted:
                message.status = STATUS_FAILED
                logger.error(
                    "outbox message %s failed permanently after %s attempts: %s",
                    message.id, message.attempts, message.last_error,
                )
            else:
                logger.warning(
                    "outbox message %s attempt %s failed: %s", message.id, message.attempts, message.last_error
                )
            self.db.flush()
            return DeliveryResult(message.id, message.status, retryable=not exhausted, error=message.last_error)
        finally:
            if owns_client:
                client.close()

        message.status = STATUS_SENT
        message.sent_at = datetime.utcnow()
        message.last_error = None
        self.db.flush()
        logger.info("outbox message %s delivered to %s", message.id, message.topic)
        return DeliveryResult(message.id, STATUS_SENT)


def schedule_delivery(message_ids: Iterable[UUID]) -> None:
    """
    Hand committed messages to the Celery sender.

    Scheduling failures are logged and left to the periodic sweep; the
    request that created the messages has already committed.
    """
    if not get_settings().outbox_dispatch_enabled:
        return
    from agencyflow.workers.dispatch_tasks import deliver_outbox_message

    for message_id in message_ids:
        try:
            deliver_outbox_message.delay(str(message_id))
        except Exception:
            logger.exception("could not schedule outbox message %s; the sweep will retry", message_id)
