"""Transactional outbox for calls to external workers."""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON, Text, ForeignKey, Uuid

from agencyflow.db.base import Base


class OutboxMessage(Base):
    """
    A pending outbound notification.

    Written in the same transaction as the record it announces and delivered
    after commit by ``agencyflow.workers.dispatch_tasks``. ``idempotency_key``
    is the job or snapshot id, so redelivery is harmless.
    """
    __tablename__ = "outbox_messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    agency_id = Column(Uuid, ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, index=True)
    topic = Column(String(50), nullable=False)  # social_fetch, analytics_fetch
    payload = Column(JSON, nullable=False)
    idempotency_key = Column(String(64), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, sent, failed
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<OutboxMessage {self.topic} {self.idempotency_key} [{self.status}]>"
