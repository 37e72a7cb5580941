"""Activity logging for agency-scoped mutations.

Each mutating service call appends exactly one ``ActivityLogEntry`` as its last
step, inside the caller's transaction, so the entry commits or rolls back with
the change it describes. Entries carry full before/after row snapshots with
secrets redacted.
"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, NamedTuple, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from agencyflow.db.models import ActivityLogEntry

logger = logging.getLogger(__name__)

# Sensitive fields to redact from snapshots and metadata
SENSITIVE_FIELDS = {
    "password",
    "smtp_password",
    "token",
    "access_token",
    "api_key",
    "secret",
    "internal_api_secret",
}


class RequestContext(NamedTuple):
    """Request details recorded with every entry."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_id: Optional[str] = None


def redact_sensitive(data: Any) -> Any:
    """Redact sensitive fields from data."""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if k.lower() in SENSITIVE_FIELDS else redact_sensitive(v)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [redact_sensitive(item) for item in data]
    return data


def _json_value(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def snapshot(instance) -> Optional[Dict[str, Any]]:
    """All column values of a mapped instance, JSON-safe and redacted."""
    if instance is None:
        return None
    state = inspect(instance)
    data = {
        attr.key: _json_value(getattr(instance, attr.key))
        for attr in state.mapper.column_attrs
    }
    return redact_sensitive(data)


class ActivityLogger:
    """
    Appends activity entries for one actor.

    Usage:
        activity = ActivityLogger(db, actor_id=user.id, context=context)
        before = snapshot(campaign)
        ... mutate campaign ...
        activity.log(agency_id, "campaign", campaign.id, "campaign.activated",
                     before=before, after=snapshot(campaign))
    """

    def __init__(
        self,
        db: Session,
        *,
        actor_id: Optional[uuid.UUID] = None,
        actor_type: str = "user",
        context: Optional[RequestContext] = None,
    ):
        self.db = db
        self.actor_id = actor_id
        self.actor_type = actor_type
        self.context = context or RequestContext()

    def log(
        self,
        agency_id: uuid.UUID,
        entity_type: str,
        entity_id: uuid.UUID,
        action: str,
        *,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ActivityLogEntry:
        entry = ActivityLogEntry(
            agency_id=agency_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=self.actor_id,
            actor_type=self.actor_type,
            before_state=redact_sensitive(before) if before else None,
            after_state=redact_sensitive(after) if after else None,
            extra_data=redact_sensitive(metadata) if metadata else None,
            ip_address=self.context.ip_address,
            user_agent=self.context.user_agent,
            request_id=self.context.request_id,
        )
        self.db.add(entry)
        self.db.flush()
        logger.debug("activity %s on %s %s by %s", action, entity_type, entity_id, self.actor_id)
        return entry
