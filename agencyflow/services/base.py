from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from agencyflow.core.audit import ActivityLogger, RequestContext
from agencyflow.core.errors import InvalidStateError, ValidationError
from agencyflow.core.lifecycle import CampaignStatus
from agencyflow.core.rbac import AccessGate, Caller
from agencyflow.db.models import AgencyMembership

NAME_MIN_LENGTH = 2


class ScopedService:
    """Wires the gate and activity logger for one caller."""

    def __init__(self, db: Session, caller: Caller, *, context: Optional[RequestContext] = None):
        self.db = db
        self.caller = caller
        self.gate = AccessGate(db, caller)
        self.activity = ActivityLogger(
            db, actor_id=caller.actor_id, actor_type=caller.actor_type, context=context
        )


def clean_name(value: Optional[str], field: str = "name") -> str:
    """Trimmed name of at least two characters."""
    name = (value or "").strip()
    if len(name) < NAME_MIN_LENGTH:
        raise ValidationError(
            f"{field.replace('_', ' ').capitalize()} must be at least {NAME_MIN_LENGTH} characters",
            field=field,
        )
    return name


def require_campaign_editable(campaign, attempted: str) -> None:
    """Archived campaigns freeze every part of the aggregate."""
    if campaign.status == CampaignStatus.ARCHIVED.value:
        raise InvalidStateError(
            "Archived campaigns cannot be modified",
            current_state=campaign.status,
            attempted=attempted,
        )


def require_active_member(db: Session, agency_id: UUID, user_id: UUID, field: str = "user_id") -> AgencyMembership:
    membership = (
        db.query(AgencyMembership)
        .filter(
            AgencyMembership.agency_id == agency_id,
            AgencyMembership.user_id == user_id,
            AgencyMembership.is_active.is_(True),
        )
        .first()
    )
    if membership is None:
        raise ValidationError(f"User {user_id} is not an active member of this agency", field=field)
    return membership
