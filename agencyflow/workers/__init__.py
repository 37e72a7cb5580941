"""Celery workers for AgencyFlow."""

from agencyflow.workers.dispatch_tasks import (
    celery_app,
    deliver_outbox_message,
    sweep_outbox,
)

__all__ = [
    "celery_app",
    "deliver_outbox_message",
    "sweep_outbox",
]
