"""Deliverable and approval API endpoints."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agencyflow.api.deps import get_caller, get_db, get_request_context
from agencyflow.core.audit import RequestContext
from agencyflow.core.rbac import Caller
from agencyflow.services.deliverables import DeliverableService

router = APIRouter(tags=["deliverables"])


# Schemas
class DeliverableResponse(BaseModel):
    id: UUID
    campaign_id: UUID
    title: str
    deliverable_type: str
    description: Optional[str]
    due_date: Optional[date]
    status: str
    client_preview_version_id: Optional[UUID]
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DeliverableCreate(BaseModel):
    title: str = Field(..., max_length=255)
    deliverable_type: str = "post"
    description: Optional[str] = None
    due_date: Optional[date] = None


class VersionCreate(BaseModel):
    file_name: str = Field(..., max_length=500)
    file_url: str
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None
    caption: Optional[str] = None


class CaptionUpdate(BaseModel):
    caption: Optional[str] = None


class VersionResponse(BaseModel):
    id: UUID
    deliverable_id: UUID
    file_name: str
    version_number: int
    upload_seq: int
    file_url: str
    file_size: Optional[int]
    mime_type: Optional[str]
    caption: Optional[str]
    submitted_by: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True


class DecisionRequest(BaseModel):
    version_id: UUID
    tier: str
    comment: Optional[str] = None


class ApprovalResponse(BaseModel):
    id: UUID
    deliverable_id: UUID
    version_id: UUID
    tier: str
    decision: str
    decided_by: Optional[UUID]
    decided_by_contact: Optional[UUID]
    comment: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class PreviewRequest(BaseModel):
    version_id: Optional[UUID] = None


# Endpoints
@router.post(
    "/campaigns/{campaign_id}/deliverables",
    response_model=DeliverableResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_deliverable(
    campaign_id: UUID,
    data: DeliverableCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    service = DeliverableService(db, caller, context=context)
    deliverable = service.create_deliverable(
        campaign_id,
        title=data.title,
        deliverable_type=data.deliverable_type,
        description=data.description,
        due_date=data.due_date,
    )
    db.commit()
    return DeliverableResponse.model_validate(deliverable)


@router.get("/deliverables/{deliverable_id}", response_model=DeliverableResponse)
async def get_deliverable(
    deliverable_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    deliverable = DeliverableService(db, caller).get_deliverable(deliverable_id)
    return DeliverableResponse.model_validate(deliverable)


@router.get("/deliverables/{deliverable_id}/versions", response_model=List[VersionResponse])
async def list_versions(
    deliverable_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    versions = DeliverableService(db, caller).list_versions(deliverable_id)
    return [VersionResponse.model_validate(v) for v in versions]


@router.post(
    "/deliverables/{deliverable_id}/versions",
    response_model=VersionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_deliverable_version(
    deliverable_id: UUID,
    data: VersionCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Register an uploaded file as the newest version."""
    service = DeliverableService(db, caller, context=context)
    version = service.upload_deliverable_version(
        deliverable_id,
        file_name=data.file_name,
        file_url=data.file_url,
        file_size=data.file_size,
        mime_type=data.mime_type,
        caption=data.caption,
    )
    db.commit()
    return VersionResponse.model_validate(version)


@router.delete("/deliverable-versions/{version_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deliverable_version(
    version_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    DeliverableService(db, caller, context=context).delete_deliverable_version(version_id)
    db.commit()


@router.put("/deliverable-versions/{version_id}/caption", response_model=VersionResponse)
async def update_deliverable_version_caption(
    version_id: UUID,
    data: CaptionUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    version = DeliverableService(db, caller, context=context).update_deliverable_version_caption(
        version_id, data.caption
    )
    db.commit()
    return VersionResponse.model_validate(version)


@router.put("/deliverables/{deliverable_id}/preview", response_model=DeliverableResponse)
async def set_client_preview_version(
    deliverable_id: UUID,
    data: PreviewRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    service = DeliverableService(db, caller, context=context)
    deliverable = service.set_client_preview_version(deliverable_id, data.version_id)
    db.commit()
    return DeliverableResponse.model_validate(deliverable)


@router.post("/deliverables/{deliverable_id}/submit", response_model=DeliverableResponse)
async def submit_deliverable_for_review(
    deliverable_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    deliverable = DeliverableService(db, caller, context=context).submit_deliverable_for_review(deliverable_id)
    db.commit()
    return DeliverableResponse.model_validate(deliverable)


@router.post("/deliverables/{deliverable_id}/approve", response_model=DeliverableResponse)
async def approve_deliverable(
    deliverable_id: UUID,
    data: DecisionRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Record an approval at one tier for the latest version."""
    service = DeliverableService(db, caller, context=context)
    deliverable = service.approvals.approve(deliverable_id, data.version_id, data.tier, comment=data.comment)
    db.commit()
    return DeliverableResponse.model_validate(deliverable)


@router.post("/deliverables/{deliverable_id}/reject", response_model=DeliverableResponse)
async def reject_deliverable(
    deliverable_id: UUID,
    data: DecisionRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Reject the latest version at one tier. A comment is required."""
    service = DeliverableService(db, caller, context=context)
    deliverable = service.approvals.reject(deliverable_id, data.version_id, data.tier, comment=data.comment)
    db.commit()
    return DeliverableResponse.model_validate(deliverable)


@router.get("/deliverables/{deliverable_id}/approvals", response_model=List[ApprovalResponse])
async def list_deliverable_approvals(
    deliverable_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Decision history across all versions, oldest first."""
    approvals = DeliverableService(db, caller).list_deliverable_approvals(deliverable_id)
    return [ApprovalResponse.model_validate(a) for a in approvals]
