"""Client portal endpoints for client contacts.

Contacts authenticate with a ``typ=contact`` token and only ever see their
own client's deliverables. They decide at the client tier only.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from agencyflow.api.deps import get_caller, get_db, get_request_context
from agencyflow.api.routers.deliverables import DeliverableResponse
from agencyflow.core.approval import ApprovalTier, latest_version
from agencyflow.core.audit import RequestContext
from agencyflow.core.errors import ForbiddenError, InvalidStateError
from agencyflow.core.rbac import Caller
from agencyflow.services.deliverables import DeliverableService

router = APIRouter(prefix="/client-portal", tags=["client-portal"])


class ClientDecision(BaseModel):
    version_id: Optional[UUID] = None  # defaults to the latest version
    comment: Optional[str] = None


def _require_contact(caller: Caller) -> None:
    if not caller.is_contact:
        raise ForbiddenError("Client portal endpoints are for client contacts")


def _version_id(service: DeliverableService, deliverable_id: UUID, data: ClientDecision) -> UUID:
    if data.version_id is not None:
        return data.version_id
    deliverable = service.get_deliverable(deliverable_id)
    latest = latest_version(service.db, deliverable.id)
    if latest is None:
        raise InvalidStateError(
            "Deliverable has no versions",
            current_state=deliverable.status,
            attempted="client_decision",
        )
    return latest.id


@router.get("/pending-approvals", response_model=List[DeliverableResponse])
async def pending_client_approvals(
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Deliverables waiting on the contact's client."""
    _require_contact(caller)
    deliverables = DeliverableService(db, caller).deliverables_pending_client_approval()
    return [DeliverableResponse.model_validate(d) for d in deliverables]


@router.post("/deliverables/{deliverable_id}/approve", response_model=DeliverableResponse)
async def client_approve(
    deliverable_id: UUID,
    data: Optional[ClientDecision] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    _require_contact(caller)
    data = data or ClientDecision()
    service = DeliverableService(db, caller, context=context)
    version_id = _version_id(service, deliverable_id, data)
    deliverable = service.approvals.approve(
        deliverable_id, version_id, ApprovalTier.CLIENT.value, comment=data.comment
    )
    db.commit()
    return DeliverableResponse.model_validate(deliverable)


@router.post("/deliverables/{deliverable_id}/reject", response_model=DeliverableResponse)
async def client_reject(
    deliverable_id: UUID,
    data: ClientDecision,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    _require_contact(caller)
    service = DeliverableService(db, caller, context=context)
    version_id = _version_id(service, deliverable_id, data)
    deliverable = service.approvals.reject(
        deliverable_id, version_id, ApprovalTier.CLIENT.value, comment=data.comment
    )
    db.commit()
    return DeliverableResponse.model_validate(deliverable)
