"""Campaign models."""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, Date, Integer, Text, ForeignKey, Uuid, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from agencyflow.db.base import Base


class Campaign(Base):
    """
    A body of work under a project.

    ``status`` follows the campaign lifecycle in
    ``agencyflow.core.lifecycle.states``; it is written only through
    conditional updates. ``archived`` freezes the whole aggregate.
    """
    __tablename__ = "campaigns"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    campaign_type = Column(String(50), nullable=False, default="influencer")  # influencer, social
    description = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default="draft", index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    brief = Column(Text, nullable=True)  # opaque rich text
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="campaigns")
    users = relationship("CampaignUser", back_populates="campaign", cascade="all, delete-orphan")
    attachments = relationship("CampaignAttachment", back_populates="campaign", cascade="all, delete-orphan")
    deliverables = relationship("Deliverable", back_populates="campaign")
    creators = relationship("CampaignCreator", back_populates="campaign")

    def __repr__(self) -> str:
        return f"<Campaign {self.name} [{self.status}]>"


class CampaignUser(Base):
    """Campaign-scoped role assignment (operator, approver, viewer)."""
    __tablename__ = "campaign_users"
    __table_args__ = (
        UniqueConstraint("campaign_id", "user_id", name="uq_campaign_users_campaign_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id = Column(Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaign = relationship("Campaign", back_populates="users")
    user = relationship("User")


class CampaignAttachment(Base):
    __tablename__ = "campaign_attachments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id = Column(Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(500), nullable=False)
    file_url = Column(Text, nullable=False)  # opaque storage reference
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(255), nullable=True)
    uploaded_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    campaign = relationship("Campaign", back_populates="attachments")
