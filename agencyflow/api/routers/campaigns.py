"""Campaign API endpoints."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agencyflow.api.deps import get_caller, get_db, get_request_context
from agencyflow.core.audit import RequestContext
from agencyflow.core.rbac import Caller
from agencyflow.services.campaigns import CampaignService

router = APIRouter(tags=["campaigns"])


# Schemas
class CampaignResponse(BaseModel):
    id: UUID
    project_id: UUID
    name: str
    campaign_type: str
    description: Optional[str]
    status: str
    start_date: Optional[date]
    end_date: Optional[date]
    brief: Optional[str]
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CampaignCreate(BaseModel):
    name: str = Field(..., max_length=255)
    campaign_type: str = "influencer"
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    brief: Optional[str] = None
    approver_user_ids: List[UUID] = Field(default_factory=list)


class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    campaign_type: Optional[str] = None
    description: Optional[str] = None


class CampaignDates(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class CampaignBrief(BaseModel):
    brief: Optional[str] = None


class TransitionAction(BaseModel):
    comment: Optional[str] = None


class AttachmentCreate(BaseModel):
    file_name: str = Field(..., max_length=500)
    file_url: str
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None


class AttachmentResponse(BaseModel):
    id: UUID
    campaign_id: UUID
    file_name: str
    file_url: str
    file_size: Optional[int]
    mime_type: Optional[str]
    uploaded_by: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True


class CampaignUserAssign(BaseModel):
    user_id: UUID
    role: str


class CampaignUserResponse(BaseModel):
    id: UUID
    campaign_id: UUID
    user_id: UUID
    role: str
    created_at: datetime

    class Config:
        from_attributes = True


# Endpoints
@router.post("/projects/{project_id}/campaigns", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    project_id: UUID,
    data: CampaignCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Create a draft campaign. At least one approver is required."""
    service = CampaignService(db, caller, context=context)
    campaign = service.create_campaign(
        project_id,
        name=data.name,
        campaign_type=data.campaign_type,
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
        brief=data.brief,
        approver_user_ids=data.approver_user_ids,
    )
    db.commit()
    return CampaignResponse.model_validate(campaign)


@router.get("/campaigns/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    campaign = CampaignService(db, caller).get_campaign(campaign_id)
    return CampaignResponse.model_validate(campaign)


@router.patch("/campaigns/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: UUID,
    data: CampaignUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    service = CampaignService(db, caller, context=context)
    campaign = service.update_campaign_details(
        campaign_id,
        name=data.name,
        campaign_type=data.campaign_type,
        description=data.description,
    )
    db.commit()
    return CampaignResponse.model_validate(campaign)


@router.put("/campaigns/{campaign_id}/dates", response_model=CampaignResponse)
async def set_campaign_dates(
    campaign_id: UUID,
    data: CampaignDates,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    service = CampaignService(db, caller, context=context)
    campaign = service.set_campaign_dates(campaign_id, data.start_date, data.end_date)
    db.commit()
    return CampaignResponse.model_validate(campaign)


@router.put("/campaigns/{campaign_id}/brief", response_model=CampaignResponse)
async def update_campaign_brief(
    campaign_id: UUID,
    data: CampaignBrief,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    service = CampaignService(db, caller, context=context)
    campaign = service.update_campaign_brief(campaign_id, data.brief)
    db.commit()
    return CampaignResponse.model_validate(campaign)


# Lifecycle
@router.post("/campaigns/{campaign_id}/activate", response_model=CampaignResponse)
async def activate_campaign(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    campaign = CampaignService(db, caller, context=context).activate_campaign(campaign_id)
    db.commit()
    return CampaignResponse.model_validate(campaign)


@router.post("/campaigns/{campaign_id}/submit", response_model=CampaignResponse)
async def submit_campaign_for_review(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    campaign = CampaignService(db, caller, context=context).submit_campaign_for_review(campaign_id)
    db.commit()
    return CampaignResponse.model_validate(campaign)


@router.post("/campaigns/{campaign_id}/approve", response_model=CampaignResponse)
async def approve_campaign(
    campaign_id: UUID,
    action: Optional[TransitionAction] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    comment = action.comment if action else None
    campaign = CampaignService(db, caller, context=context).approve_campaign(campaign_id, comment=comment)
    db.commit()
    return CampaignResponse.model_validate(campaign)


@router.post("/campaigns/{campaign_id}/reject", response_model=CampaignResponse)
async def reject_campaign(
    campaign_id: UUID,
    action: Optional[TransitionAction] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    comment = action.comment if action else None
    campaign = CampaignService(db, caller, context=context).reject_campaign(campaign_id, comment=comment)
    db.commit()
    return CampaignResponse.model_validate(campaign)


@router.post("/campaigns/{campaign_id}/complete", response_model=CampaignResponse)
async def complete_campaign(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    campaign = CampaignService(db, caller, context=context).complete_campaign(campaign_id)
    db.commit()
    return CampaignResponse.model_validate(campaign)


@router.post("/campaigns/{campaign_id}/archive", response_model=CampaignResponse)
async def archive_campaign(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    campaign = CampaignService(db, caller, context=context).archive_campaign(campaign_id)
    db.commit()
    return CampaignResponse.model_validate(campaign)


# Attachments
@router.post(
    "/campaigns/{campaign_id}/attachments",
    response_model=AttachmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_campaign_attachment(
    campaign_id: UUID,
    data: AttachmentCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    service = CampaignService(db, caller, context=context)
    attachment = service.add_campaign_attachment(
        campaign_id,
        file_name=data.file_name,
        file_url=data.file_url,
        file_size=data.file_size,
        mime_type=data.mime_type,
    )
    db.commit()
    return AttachmentResponse.model_validate(attachment)


@router.delete("/campaign-attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_campaign_attachment(
    attachment_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    CampaignService(db, caller, context=context).remove_campaign_attachment(attachment_id)
    db.commit()


# Assignments
@router.get("/campaigns/{campaign_id}/users", response_model=List[CampaignUserResponse])
async def list_campaign_users(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    users = CampaignService(db, caller).list_campaign_users(campaign_id)
    return [CampaignUserResponse.model_validate(u) for u in users]


@router.post("/campaigns/{campaign_id}/users", response_model=CampaignUserResponse)
async def assign_user_to_campaign(
    campaign_id: UUID,
    data: CampaignUserAssign,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Assign a member to the campaign, or change their campaign role."""
    service = CampaignService(db, caller, context=context)
    assignment = service.assign_user_to_campaign(campaign_id, data.user_id, data.role)
    db.commit()
    return CampaignUserResponse.model_validate(assignment)


@router.delete("/campaign-users/{campaign_user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user_from_campaign(
    campaign_user_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    CampaignService(db, caller, context=context).remove_user_from_campaign(campaign_user_id)
    db.commit()
