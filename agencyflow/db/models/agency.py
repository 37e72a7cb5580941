"""Agency, user and membership models."""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, Boolean, Integer, JSON, ForeignKey, Uuid,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from agencyflow.db.base import Base


class Agency(Base):
    """
    Tenant root.

    ``token_balance`` is the prepaid credit balance. It is only ever changed by
    the conditional UPDATE statements in ``agencyflow.core.ledger``.
    """
    __tablename__ = "agencies"
    __table_args__ = (
        CheckConstraint("token_balance >= 0", name="ck_agencies_token_balance_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="active")  # active, suspended
    token_balance = Column(Integer, nullable=False, default=0)
    locale = Column(JSON, nullable=False, default=dict)  # currency, timezone, language
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    memberships = relationship("AgencyMembership", back_populates="agency")
    clients = relationship("Client", back_populates="agency")
    email_config = relationship("AgencyEmailConfig", back_populates="agency", uselist=False)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def __repr__(self) -> str:
        return f"<Agency {self.name} [{self.status}]>"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    memberships = relationship("AgencyMembership", back_populates="user")


class AgencyMembership(Base):
    """A user's role inside one agency."""
    __tablename__ = "agency_memberships"
    __table_args__ = (
        UniqueConstraint("agency_id", "user_id", name="uq_agency_memberships_agency_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    agency_id = Column(Uuid, ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(50), nullable=False)  # agency_admin, account_manager, operator, internal_approver
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    agency = relationship("Agency", back_populates="memberships")
    user = relationship("User", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<AgencyMembership {self.user_id}@{self.agency_id} [{self.role}]>"


class AgencyEmailConfig(Base):
    """Per-agency SMTP settings. ``smtp_password`` is never returned by the API."""
    __tablename__ = "agency_email_configs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    agency_id = Column(Uuid, ForeignKey("agencies.id", ondelete="CASCADE"), nullable=False, unique=True)
    smtp_host = Column(String(255), nullable=False)
    smtp_port = Column(Integer, nullable=False, default=587)
    smtp_secure = Column(Boolean, nullable=False, default=False)
    smtp_username = Column(String(255), nullable=True)
    smtp_password = Column(String(500), nullable=True)
    from_email = Column(String(255), nullable=False)
    from_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    agency = relationship("Agency", back_populates="email_config")
