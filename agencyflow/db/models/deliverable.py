"""Deliverable, version and approval models.

Approvals are write-once: the ORM guard below and the PostgreSQL triggers in
migration 0002 reject UPDATE and DELETE.
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, DateTime, Date, Integer, Text, ForeignKey, Uuid,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from agencyflow.db.base import Base, append_only


class Deliverable(Base):
    """
    A piece of work that moves through the tiered approval pipeline.

    ``status`` caches the outcome of replaying the approval ledger for the
    latest version; see ``agencyflow.core.approval.quorum``.
    """
    __tablename__ = "deliverables"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    campaign_id = Column(Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    deliverable_type = Column(String(50), nullable=False, default="post")
    description = Column(Text, nullable=True)
    due_date = Column(Date, nullable=True)
    status = Column(String(50), nullable=False, default="pending", index=True)
    client_preview_version_id = Column(
        Uuid, ForeignKey("deliverable_versions.id", ondelete="SET NULL", use_alter=True), nullable=True
    )
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    campaign = relationship("Campaign", back_populates="deliverables")
    versions = relationship(
        "DeliverableVersion",
        back_populates="deliverable",
        foreign_keys="DeliverableVersion.deliverable_id",
        order_by="DeliverableVersion.upload_seq",
    )
    client_preview_version = relationship("DeliverableVersion", foreign_keys=[client_preview_version_id], post_update=True)

    def __repr__(self) -> str:
        return f"<Deliverable {self.title} [{self.status}]>"


class DeliverableVersion(Base):
    """
    One uploaded file revision.

    ``version_number`` counts per file name; ``upload_seq`` counts across the
    whole deliverable and identifies the latest version.
    """
    __tablename__ = "deliverable_versions"
    __table_args__ = (
        UniqueConstraint("deliverable_id", "file_name", "version_number", name="uq_deliverable_versions_file_version"),
        UniqueConstraint("deliverable_id", "upload_seq", name="uq_deliverable_versions_upload_seq"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    deliverable_id = Column(Uuid, ForeignKey("deliverables.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(500), nullable=False)
    version_number = Column(Integer, nullable=False)
    upload_seq = Column(Integer, nullable=False)
    file_url = Column(Text, nullable=False)  # opaque storage reference
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(255), nullable=True)
    caption = Column(Text, nullable=True)
    submitted_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    deliverable = relationship("Deliverable", back_populates="versions", foreign_keys=[deliverable_id])
    approvals = relationship("Approval", back_populates="version")


@append_only("approval")
class Approval(Base):
    """A single approve/reject decision at one tier for one version."""
    __tablename__ = "approvals"
    __table_args__ = (
        CheckConstraint(
            "(decided_by IS NOT NULL) OR (decided_by_contact IS NOT NULL)",
            name="ck_approvals_has_decider",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    deliverable_id = Column(Uuid, ForeignKey("deliverables.id", ondelete="CASCADE"), nullable=False, index=True)
    version_id = Column(Uuid, ForeignKey("deliverable_versions.id"), nullable=False, index=True)
    tier = Column(String(20), nullable=False)  # campaign, project, client
    decision = Column(String(20), nullable=False)  # approved, rejected
    decided_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    decided_by_contact = Column(Uuid, ForeignKey("contacts.id"), nullable=True)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    version = relationship("DeliverableVersion", back_populates="approvals")

    @property
    def decider_id(self) -> uuid.UUID:
        return self.decided_by or self.decided_by_contact

    def __repr__(self) -> str:
        return f"<Approval {self.tier}:{self.decision} v={self.version_id}>"
