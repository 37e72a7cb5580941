"""Creator roster and credit-metered fetch endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agencyflow.api.deps import get_agency_id, get_caller, get_db, get_request_context
from agencyflow.core.audit import RequestContext
from agencyflow.core.rbac import Caller
from agencyflow.services.analytics import AnalyticsService
from agencyflow.services.creators import CreatorService
from agencyflow.services.outbox import schedule_delivery

router = APIRouter(tags=["creators"])


# Schemas
class CreatorCreate(BaseModel):
    display_name: str = Field(..., max_length=255)
    email: Optional[str] = None
    instagram_handle: Optional[str] = None
    youtube_handle: Optional[str] = None
    tiktok_handle: Optional[str] = None


class CreatorResponse(BaseModel):
    id: UUID
    agency_id: UUID
    display_name: str
    email: Optional[str]
    instagram_handle: Optional[str]
    youtube_handle: Optional[str]
    tiktok_handle: Optional[str]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CampaignCreatorCreate(BaseModel):
    creator_id: UUID
    rate_amount: Optional[Decimal] = None
    rate_currency: Optional[str] = None
    notes: Optional[str] = None


class CampaignCreatorResponse(BaseModel):
    id: UUID
    campaign_id: UUID
    creator_id: UUID
    status: str
    rate_amount: Optional[Decimal]
    rate_currency: str
    created_at: datetime

    class Config:
        from_attributes = True


class AnalyticsFetchRequest(BaseModel):
    platform: str


class SocialFetchRequest(BaseModel):
    platform: str
    job_type: str = "basic_scrape"


class MeteredResponse(BaseModel):
    """A queued metered fetch: poll ``id`` for the result."""
    id: UUID
    status: str
    tokens_consumed: int
    new_balance: int


class SnapshotResponse(BaseModel):
    id: UUID
    campaign_creator_id: UUID
    analytics_type: str
    platform: str
    status: str
    tokens_consumed: int
    payload: Optional[Dict[str, Any]]
    error_message: Optional[str]
    fetched_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class SocialJobResponse(BaseModel):
    id: UUID
    creator_id: UUID
    platform: str
    job_type: str
    status: str
    tokens_consumed: int
    error_message: Optional[str]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


# Endpoints
@router.post("/creators", response_model=CreatorResponse, status_code=status.HTTP_201_CREATED)
async def create_creator(
    data: CreatorCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    agency_id: UUID = Depends(get_agency_id),
    context: RequestContext = Depends(get_request_context),
):
    """Add a creator to the roster of the caller's active agency."""
    creator = CreatorService(db, caller, context=context).create_creator(
        agency_id,
        display_name=data.display_name,
        email=data.email,
        instagram_handle=data.instagram_handle,
        youtube_handle=data.youtube_handle,
        tiktok_handle=data.tiktok_handle,
    )
    db.commit()
    return CreatorResponse.model_validate(creator)


@router.get("/creators/{creator_id}", response_model=CreatorResponse)
async def get_creator(
    creator_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return CreatorResponse.model_validate(CreatorService(db, caller).get_creator(creator_id))


@router.get("/campaigns/{campaign_id}/creators", response_model=List[CampaignCreatorResponse])
async def list_campaign_creators(
    campaign_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    rows = CreatorService(db, caller).list_campaign_creators(campaign_id)
    return [CampaignCreatorResponse.model_validate(r) for r in rows]


@router.post(
    "/campaigns/{campaign_id}/creators",
    response_model=CampaignCreatorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invite_creator_to_campaign(
    campaign_id: UUID,
    data: CampaignCreatorCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    campaign_creator = CreatorService(db, caller, context=context).invite_creator_to_campaign(
        campaign_id,
        data.creator_id,
        rate_amount=data.rate_amount,
        rate_currency=data.rate_currency,
        notes=data.notes,
    )
    db.commit()
    return CampaignCreatorResponse.model_validate(campaign_creator)


@router.post("/campaign-creators/{campaign_creator_id}/accept", response_model=CampaignCreatorResponse)
async def accept_campaign_invite(
    campaign_creator_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    campaign_creator = CreatorService(db, caller, context=context).accept_campaign_invite(campaign_creator_id)
    db.commit()
    return CampaignCreatorResponse.model_validate(campaign_creator)


@router.post("/campaign-creators/{campaign_creator_id}/decline", response_model=CampaignCreatorResponse)
async def decline_campaign_invite(
    campaign_creator_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    campaign_creator = CreatorService(db, caller, context=context).decline_campaign_invite(campaign_creator_id)
    db.commit()
    return CampaignCreatorResponse.model_validate(campaign_creator)


@router.delete("/campaign-creators/{campaign_creator_id}", response_model=CampaignCreatorResponse)
async def remove_creator_from_campaign(
    campaign_creator_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Mark the creator removed. Payment history stays attached."""
    campaign_creator = CreatorService(db, caller, context=context).remove_creator_from_campaign(campaign_creator_id)
    db.commit()
    return CampaignCreatorResponse.model_validate(campaign_creator)


# Credit-metered fetches
@router.post(
    "/campaign-creators/{campaign_creator_id}/analytics",
    response_model=MeteredResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def fetch_pre_campaign_analytics(
    campaign_creator_id: UUID,
    data: AnalyticsFetchRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Spend one token to queue a pre-campaign analytics snapshot."""
    result = AnalyticsService(db, caller, context=context).fetch_pre_campaign_analytics(
        campaign_creator_id, data.platform
    )
    db.commit()
    schedule_delivery([result.message_id])
    return MeteredResponse(
        id=result.record.id,
        status=result.record.status,
        tokens_consumed=result.record.tokens_consumed,
        new_balance=result.new_balance,
    )


@router.post(
    "/creators/{creator_id}/social-fetch",
    response_model=MeteredResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def trigger_social_fetch(
    creator_id: UUID,
    data: SocialFetchRequest,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Spend one token to queue a social profile scrape."""
    result = AnalyticsService(db, caller, context=context).trigger_social_fetch(
        creator_id, data.platform, data.job_type
    )
    db.commit()
    schedule_delivery([result.message_id])
    return MeteredResponse(
        id=result.record.id,
        status=result.record.status,
        tokens_consumed=result.record.tokens_consumed,
        new_balance=result.new_balance,
    )


@router.get("/analytics-snapshots/{snapshot_id}", response_model=SnapshotResponse)
async def get_analytics_snapshot(
    snapshot_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return SnapshotResponse.model_validate(AnalyticsService(db, caller).get_snapshot(snapshot_id))


@router.get("/social-jobs/{job_id}", response_model=SocialJobResponse)
async def get_social_job(
    job_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return SocialJobResponse.model_validate(AnalyticsService(db, caller).get_job(job_id))
