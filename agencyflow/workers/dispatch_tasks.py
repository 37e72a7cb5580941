"""Celery tasks for outbox delivery.

Provides async task processing for:
- Delivering one outbox message to the social-metrics worker
- Periodic sweep of messages whose delivery was never scheduled
"""

from datetime import timedelta
from typing import Any, Dict
from uuid import UUID
import logging

from celery import Celery, shared_task
from celery.signals import setup_logging

from agencyflow.core.config import get_settings
from agencyflow.core.logger import setup_logger
from agencyflow.db.session import SessionLocal
from agencyflow.services.outbox import OutboxService

logger = logging.getLogger(__name__)
settings = get_settings()

# Initialize Celery
celery_app = Celery(
    'agencyflow',
    broker=settings.celery_broker,
    backend=settings.celery_backend,
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_acks_late=True,
    task_routes={
        'agencyflow.workers.dispatch_tasks.deliver_outbox_message': {'queue': 'dispatch'},
        'agencyflow.workers.dispatch_tasks.sweep_outbox': {'queue': 'dispatch'},
    },
    task_default_queue='default',
    beat_schedule={
        'sweep-outbox': {
            'task': 'agencyflow.workers.dispatch_tasks.sweep_outbox',
            'schedule': float(settings.outbox_sweep_interval),
        },
    },
)


@setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the application log handlers instead of Celery's defaults."""
    setup_logger()


# Sweep leaves fresh messages to the delivery scheduled by the request
SWEEP_GRACE = timedelta(seconds=30)


class OutboxDeliveryError(Exception):
    """Raised to trigger a Celery retry of a failed POST."""


@shared_task(bind=True, max_retries=settings.outbox_max_attempts, default_retry_delay=30)
def deliver_outbox_message(self, message_id: str) -> Dict[str, Any]:
    """
    Async task to POST one outbox message.

    Args:
        message_id: OutboxMessage ID

    Returns:
        Delivery status dictionary
    """
    db = SessionLocal()
    try:
        result = OutboxService(db).deliver(UUID(message_id))
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Outbox delivery crashed for {message_id}")
        raise
    finally:
        db.close()

    if result.retryable:
        # Exponential backoff: 30s, 60s, 120s, ...
        countdown = 30 * (2 ** self.request.retries)
        raise self.retry(exc=OutboxDeliveryError(result.error), countdown=countdown)

    return {"message_id": message_id, "status": result.status}


@shared_task
def sweep_outbox() -> Dict[str, Any]:
    """
    Periodic task to re-enqueue pending outbox messages.

    Should be scheduled via Celery Beat.
    """
    db = SessionLocal()
    try:
        message_ids = OutboxService(db).pending_ids(settings.outbox_sweep_batch, older_than=SWEEP_GRACE)
    finally:
        db.close()

    for message_id in message_ids:
        deliver_outbox_message.delay(str(message_id))

    if message_ids:
        logger.info(f"Outbox sweep queued {len(message_ids)} message(s)")
    return {"queued": len(message_ids)}
