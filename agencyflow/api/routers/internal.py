"""Callback endpoints for the external social-metrics worker.

Authenticated with the ``X-Internal-Secret`` header, never a user token.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from agencyflow.api.deps import get_db, get_request_context, require_internal_secret
from agencyflow.core.audit import RequestContext
from agencyflow.services.worker_reports import WorkerReportService

router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(require_internal_secret)],
)


class JobStatusReport(BaseModel):
    status: str
    error: Optional[str] = None


class SocialPost(BaseModel):
    platform_post_id: str
    posted_at: Optional[datetime] = None
    metrics: Optional[Dict[str, Any]] = None
    raw: Optional[Dict[str, Any]] = None


class SocialPostsReport(BaseModel):
    posts: List[SocialPost]


class SnapshotResult(BaseModel):
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


@router.post("/social-jobs/{job_id}/status")
async def report_job_status(
    job_id: UUID,
    data: JobStatusReport,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    job = WorkerReportService(db, context=context).report_job_status(job_id, data.status, error_message=data.error)
    db.commit()
    return {"id": str(job.id), "status": job.status}


@router.post("/social-jobs/{job_id}/posts")
async def append_social_posts(
    job_id: UUID,
    data: SocialPostsReport,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    count = WorkerReportService(db, context=context).append_social_posts(
        job_id, [post.model_dump() for post in data.posts]
    )
    db.commit()
    return {"id": str(job_id), "stored": count}


@router.post("/analytics-snapshots/{snapshot_id}/result")
async def complete_analytics_snapshot(
    snapshot_id: UUID,
    data: SnapshotResult,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(get_request_context),
):
    snapshot = WorkerReportService(db, context=context).complete_analytics_snapshot(
        snapshot_id, payload=data.payload, error_message=data.error
    )
    db.commit()
    return {"id": str(snapshot.id), "status": snapshot.status}
