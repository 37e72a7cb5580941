import hmac
from typing import Generator, Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from agencyflow.core.audit import RequestContext
from agencyflow.core.config import get_settings
from agencyflow.core.errors import ForbiddenError, UnauthenticatedError, ValidationError
from agencyflow.core.rbac import Caller, load_contact_caller, load_user_caller
from agencyflow.core.security import decode_token
from agencyflow.db.models import Contact, User
from agencyflow.db.session import SessionLocal

bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_request_context(request: Request) -> RequestContext:
    """Request details copied onto activity log entries."""
    return RequestContext(
        ip_address=getattr(request.state, "client_ip", None),
        user_agent=getattr(request.state, "user_agent", None),
        request_id=getattr(request.state, "request_id", None),
    )


def get_caller(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_agency_id: Optional[str] = Header(None),
) -> Caller:
    """Resolve the bearer token to an agency user or a client-portal contact."""
    if credentials is None:
        raise UnauthenticatedError("Missing bearer token")

    subject = decode_token(credentials.credentials)
    if subject is None:
        raise UnauthenticatedError("Could not validate credentials")

    if subject.token_type == "contact":
        contact = db.get(Contact, subject.subject_id)
        if contact is None or not contact.is_active:
            raise UnauthenticatedError("Could not validate credentials")
        return load_contact_caller(db, contact)

    user = db.get(User, subject.subject_id)
    if user is None or not user.is_active:
        raise UnauthenticatedError("Could not validate credentials")

    requested_agency_id = None
    if x_agency_id:
        try:
            requested_agency_id = UUID(x_agency_id)
        except ValueError:
            raise ValidationError("X-Agency-ID must be a UUID", field="X-Agency-ID")
    return load_user_caller(db, user.id, requested_agency_id)


def get_agency_id(caller: Caller = Depends(get_caller)) -> UUID:
    """The caller's effective agency: the requested one if a member, else the first."""
    agency_id = caller.effective_agency_id
    if agency_id is None:
        raise ForbiddenError("No active agency membership")
    return agency_id


def require_internal_secret(x_internal_secret: Optional[str] = Header(None)) -> None:
    """Shared-secret check for the worker callback endpoints."""
    expected = get_settings().internal_api_secret
    if not x_internal_secret or not hmac.compare_digest(x_internal_secret, expected):
        raise UnauthenticatedError("Invalid internal secret")
