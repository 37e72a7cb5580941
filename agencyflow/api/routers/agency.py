"""Agency settings API endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agencyflow.api.deps import get_caller, get_db, get_request_context
from agencyflow.core.audit import RequestContext
from agencyflow.core.rbac import Caller
from agencyflow.services.agency import AgencyService

router = APIRouter(tags=["agency"])


# Schemas
class BalanceResponse(BaseModel):
    agency_id: UUID
    token_balance: int


class TokenCredit(BaseModel):
    amount: int = Field(..., gt=0)
    reason: Optional[str] = None


class EmailConfigRequest(BaseModel):
    smtp_host: str
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None  # blank keeps the stored password
    from_email: str
    from_name: Optional[str] = None


class EmailConfigResponse(BaseModel):
    """SMTP settings. The password is never returned, only whether one is set."""
    agency_id: UUID
    smtp_host: str
    smtp_port: int
    smtp_secure: bool
    smtp_username: Optional[str]
    from_email: str
    from_name: Optional[str]
    has_password: bool
    updated_at: Optional[datetime]

    @classmethod
    def from_config(cls, config) -> "EmailConfigResponse":
        return cls(
            agency_id=config.agency_id,
            smtp_host=config.smtp_host,
            smtp_port=config.smtp_port,
            smtp_secure=config.smtp_secure,
            smtp_username=config.smtp_username,
            from_email=config.from_email,
            from_name=config.from_name,
            has_password=bool(config.smtp_password),
            updated_at=config.updated_at,
        )


class MembershipRoleUpdate(BaseModel):
    role: str


class MembershipResponse(BaseModel):
    id: UUID
    agency_id: UUID
    user_id: UUID
    role: str
    is_active: bool

    class Config:
        from_attributes = True


# Endpoints
@router.get("/agencies/{agency_id}/balance", response_model=BalanceResponse)
async def get_balance(
    agency_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    balance = AgencyService(db, caller).get_balance(agency_id)
    return BalanceResponse(agency_id=agency_id, token_balance=balance)


@router.post("/agencies/{agency_id}/tokens", response_model=BalanceResponse)
async def credit_tokens(
    agency_id: UUID,
    data: TokenCredit,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Add purchased tokens to the agency balance."""
    balance = AgencyService(db, caller, context=context).credit_tokens(agency_id, data.amount, reason=data.reason)
    db.commit()
    return BalanceResponse(agency_id=agency_id, token_balance=balance)


@router.get("/agencies/{agency_id}/email-config", response_model=Optional[EmailConfigResponse])
async def get_email_config(
    agency_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    config = AgencyService(db, caller).get_email_config(agency_id)
    return EmailConfigResponse.from_config(config) if config else None


@router.put("/agencies/{agency_id}/email-config", response_model=EmailConfigResponse)
async def save_email_config(
    agency_id: UUID,
    data: EmailConfigRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    config = AgencyService(db, caller, context=context).save_email_config(
        agency_id,
        smtp_host=data.smtp_host,
        smtp_port=data.smtp_port,
        smtp_secure=data.smtp_secure,
        smtp_username=data.smtp_username,
        smtp_password=data.smtp_password,
        from_email=data.from_email,
        from_name=data.from_name,
    )
    db.commit()
    return EmailConfigResponse.from_config(config)


@router.patch("/memberships/{membership_id}", response_model=MembershipResponse)
async def update_membership_role(
    membership_id: UUID,
    data: MembershipRoleUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    membership = AgencyService(db, caller, context=context).update_membership_role(membership_id, data.role)
    db.commit()
    return MembershipResponse.model_validate(membership)
