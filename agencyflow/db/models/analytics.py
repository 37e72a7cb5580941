"""Credit-metered fetch records and their results.

Each row created by a metered operation carries ``tokens_consumed`` so the
ledger debit can be reconciled against the work it paid for.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON, Text, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from agencyflow.db.base import Base, append_only, persisted_value


class SocialDataJob(Base):
    """Profile scrape request handed to the external social-metrics worker."""
    __tablename__ = "social_data_jobs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    agency_id = Column(Uuid, ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id = Column(Uuid, ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(20), nullable=False)  # instagram, youtube
    job_type = Column(String(50), nullable=False)  # basic_scrape, enriched_profile
    status = Column(String(20), nullable=False, default="pending", index=True)
    error_message = Column(Text, nullable=True)
    tokens_consumed = Column(Integer, nullable=False, default=0)
    triggered_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    creator = relationship("Creator")
    posts = relationship("CreatorSocialPost", back_populates="job")


@append_only(
    "analytics_snapshot",
    when=lambda snapshot: persisted_value(snapshot, "status") in ("done", "failed"),
)
class AnalyticsSnapshot(Base):
    """Pre-campaign analytics for one creator in one campaign. Write-once once terminal."""
    __tablename__ = "analytics_snapshots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    agency_id = Column(Uuid, ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, index=True)
    campaign_creator_id = Column(Uuid, ForeignKey("campaign_creators.id", ondelete="CASCADE"), nullable=False, index=True)
    analytics_type = Column(String(50), nullable=False, default="pre_campaign")
    platform = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)
    tokens_consumed = Column(Integer, nullable=False, default=0)
    payload = Column(JSON, nullable=True)  # opaque provider data
    error_message = Column(Text, nullable=True)
    triggered_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    fetched_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaign_creator = relationship("CampaignCreator")


@append_only("creator_social_post")
class CreatorSocialPost(Base):
    __tablename__ = "creator_social_posts"
    __table_args__ = (
        UniqueConstraint("creator_id", "platform", "platform_post_id", "job_id", name="uq_creator_social_posts_post_job"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    creator_id = Column(Uuid, ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True)
    job_id = Column(Uuid, ForeignKey("social_data_jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String(20), nullable=False)
    platform_post_id = Column(String(255), nullable=False)
    posted_at = Column(DateTime, nullable=True)
    metrics = Column(JSON, nullable=True)
    raw = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    job = relationship("SocialDataJob", back_populates="posts")
