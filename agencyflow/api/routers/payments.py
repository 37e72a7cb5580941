"""Creator payment API endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from agencyflow.api.deps import get_caller, get_db, get_request_context
from agencyflow.core.audit import RequestContext
from agencyflow.core.rbac import Caller
from agencyflow.services.payments import PaymentService

router = APIRouter(tags=["payments"])


# Schemas
class PaymentCreate(BaseModel):
    amount: Decimal
    payment_type: str
    currency: Optional[str] = None
    payment_date: Optional[date] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: UUID
    campaign_creator_id: UUID
    amount: Decimal
    currency: str
    payment_type: str
    status: str
    payment_date: Optional[date]
    payment_reference: Optional[str]
    notes: Optional[str]
    created_by: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True


class MarkPaidRequest(BaseModel):
    payment_date: Optional[date] = None
    payment_reference: Optional[str] = None


class MarkFailedRequest(BaseModel):
    notes: Optional[str] = None


# Endpoints
@router.post(
    "/campaign-creators/{campaign_creator_id}/payments",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payment(
    campaign_creator_id: UUID,
    data: PaymentCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    payment = PaymentService(db, caller, context=context).create_payment(
        campaign_creator_id,
        amount=data.amount,
        payment_type=data.payment_type,
        currency=data.currency,
        payment_date=data.payment_date,
        payment_reference=data.payment_reference,
        notes=data.notes,
    )
    db.commit()
    return PaymentResponse.model_validate(payment)


@router.get("/campaign-creators/{campaign_creator_id}/payments", response_model=List[PaymentResponse])
async def list_payments(
    campaign_creator_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    payments = PaymentService(db, caller).list_payments(campaign_creator_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.post("/payments/{payment_id}/processing", response_model=PaymentResponse)
async def start_processing(
    payment_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    payment = PaymentService(db, caller, context=context).start_processing(payment_id)
    db.commit()
    return PaymentResponse.model_validate(payment)


@router.post("/payments/{payment_id}/paid", response_model=PaymentResponse)
async def mark_paid(
    payment_id: UUID,
    data: Optional[MarkPaidRequest] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Mark a payment paid. Paid payments can never change again."""
    data = data or MarkPaidRequest()
    payment = PaymentService(db, caller, context=context).mark_paid(
        payment_id, payment_date=data.payment_date, payment_reference=data.payment_reference
    )
    db.commit()
    return PaymentResponse.model_validate(payment)


@router.post("/payments/{payment_id}/failed", response_model=PaymentResponse)
async def mark_failed(
    payment_id: UUID,
    data: Optional[MarkFailedRequest] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    notes = data.notes if data else None
    payment = PaymentService(db, caller, context=context).mark_failed(payment_id, notes=notes)
    db.commit()
    return PaymentResponse.model_validate(payment)


@router.post("/payments/{payment_id}/retry", response_model=PaymentResponse)
async def retry_payment(
    payment_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    payment = PaymentService(db, caller, context=context).retry_payment(payment_id)
    db.commit()
    return PaymentResponse.model_validate(payment)
