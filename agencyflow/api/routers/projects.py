"""Project API endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agencyflow.api.deps import get_caller, get_db, get_request_context
from agencyflow.core.audit import RequestContext
from agencyflow.core.rbac import Caller
from agencyflow.services.projects import ProjectService

router = APIRouter(tags=["projects"])


# Schemas
class ProjectCreate(BaseModel):
    name: str = Field(..., max_length=255)
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    id: UUID
    client_id: UUID
    name: str
    description: Optional[str]
    is_archived: bool
    created_by: Optional[UUID]
    created_at: datetime

    class Config:
        from_attributes = True


class ProjectMemberAdd(BaseModel):
    user_id: UUID


class ProjectMemberResponse(BaseModel):
    id: UUID
    project_id: UUID
    user_id: UUID
    created_at: datetime

    class Config:
        from_attributes = True


# Endpoints
@router.post("/clients/{client_id}/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    client_id: UUID,
    data: ProjectCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    project = ProjectService(db, caller, context=context).create_project(
        client_id, name=data.name, description=data.description
    )
    db.commit()
    return ProjectResponse.model_validate(project)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return ProjectResponse.model_validate(ProjectService(db, caller).get_project(project_id))


@router.post("/projects/{project_id}/archive", response_model=ProjectResponse)
async def archive_project(
    project_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    project = ProjectService(db, caller, context=context).archive_project(project_id)
    db.commit()
    return ProjectResponse.model_validate(project)


@router.get("/projects/{project_id}/approvers", response_model=List[ProjectMemberResponse])
async def list_project_approvers(
    project_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    approvers = ProjectService(db, caller).list_project_approvers(project_id)
    return [ProjectMemberResponse.model_validate(a) for a in approvers]


@router.post(
    "/projects/{project_id}/approvers",
    response_model=ProjectMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_project_approver(
    project_id: UUID,
    data: ProjectMemberAdd,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    approver = ProjectService(db, caller, context=context).add_project_approver(project_id, data.user_id)
    db.commit()
    return ProjectMemberResponse.model_validate(approver)


@router.delete("/project-approvers/{project_approver_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_project_approver(
    project_approver_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    ProjectService(db, caller, context=context).remove_project_approver(project_approver_id)
    db.commit()


@router.post(
    "/projects/{project_id}/users",
    response_model=ProjectMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_project_user(
    project_id: UUID,
    data: ProjectMemberAdd,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    project_user = ProjectService(db, caller, context=context).add_project_user(project_id, data.user_id)
    db.commit()
    return ProjectMemberResponse.model_validate(project_user)


@router.delete("/project-users/{project_user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_project_user(
    project_user_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    ProjectService(db, caller, context=context).remove_project_user(project_user_id)
    db.commit()
