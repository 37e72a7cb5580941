"""Creator roster, campaign participation and creator payments."""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, Date, Boolean, Numeric, Text, ForeignKey, Uuid,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from agencyflow.db.base import Base, append_only, persisted_value


class Creator(Base):
    __tablename__ = "creators"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    agency_id = Column(Uuid, ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    instagram_handle = Column(String(255), nullable=True)
    youtube_handle = Column(String(255), nullable=True)
    tiktok_handle = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaigns = relationship("CampaignCreator", back_populates="creator")

    def handle_for(self, platform: str):
        return getattr(self, f"{platform}_handle", None)


class CampaignCreator(Base):
    __tablename__ = "campaign_creators"
    __table_args__ = (
        UniqueConstraint("campaign_id", "creator_id", name="uq_campaign_creators_campaign_creator"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id = Column(Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id = Column(Uuid, ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(50), nullable=False, default="invited")  # invited, accepted, declined, removed
    rate_amount = Column(Numeric(12, 2), nullable=True)
    rate_currency = Column(String(3), nullable=False, default="INR")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaign = relationship("Campaign", back_populates="creators")
    creator = relationship("Creator", back_populates="campaigns")
    payments = relationship("Payment", back_populates="campaign_creator")


@append_only("payment", when=lambda payment: persisted_value(payment, "status") == "paid")
class Payment(Base):
    """Creator payment. Once ``paid`` the row can no longer change."""
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_creator_id = Column(Uuid, ForeignKey("campaign_creators.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    payment_type = Column(String(20), nullable=False)  # advance, milestone, final
    status = Column(String(20), nullable=False, default="pending", index=True)
    payment_date = Column(Date, nullable=True)
    payment_reference = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaign_creator = relationship("CampaignCreator", back_populates="payments")
