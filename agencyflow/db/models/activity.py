"""Activity log model.

This table is IMMUTABLE - an ORM guard and database triggers prevent UPDATE
and DELETE. Entries are written by ``agencyflow.core.audit.ActivityLogger``.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Text, Uuid

from agencyflow.db.base import Base, append_only


@append_only("activity_log")
class ActivityLogEntry(Base):
    """One agency-scoped mutation, with full before/after snapshots."""
    __tablename__ = "activity_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    agency_id = Column(Uuid, ForeignKey("agencies.id"), nullable=False, index=True)

    # Subject
    entity_type = Column(String(100), nullable=False, index=True)
    entity_id = Column(Uuid, nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)

    # Actor
    actor_id = Column(Uuid, nullable=True, index=True)
    actor_type = Column(String(20), nullable=False, default="user")  # user, contact, system

    # Change tracking
    before_state = Column(JSON, nullable=True)
    after_state = Column(JSON, nullable=True)
    extra_data = Column("metadata", JSON, nullable=True)

    # Request context
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    request_id = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    def __repr__(self) -> str:
        return f"<ActivityLogEntry {self.action} on {self.entity_type} {self.entity_id}>"
