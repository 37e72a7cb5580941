"""Client and contact API endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from agencyflow.api.deps import get_agency_id, get_caller, get_db, get_request_context
from agencyflow.core.audit import RequestContext
from agencyflow.core.rbac import Caller
from agencyflow.services.clients import ClientService, ContactService

router = APIRouter(tags=["clients"])


# Schemas
class ClientCreate(BaseModel):
    name: str = Field(..., max_length=255)
    account_manager_id: Optional[UUID] = None


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    account_manager_id: Optional[UUID] = None


class ClientResponse(BaseModel):
    id: UUID
    agency_id: UUID
    name: str
    account_manager_id: Optional[UUID]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ContactCreate(BaseModel):
    full_name: str = Field(..., max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    is_client_approver: bool = False


class ContactUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    is_client_approver: Optional[bool] = None
    is_active: Optional[bool] = None


class ContactResponse(BaseModel):
    id: UUID
    client_id: UUID
    full_name: str
    email: Optional[str]
    is_client_approver: bool
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


# Clients
@router.post("/clients", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    agency_id: UUID = Depends(get_agency_id),
    context: RequestContext = Depends(get_request_context),
):
    """Open a client in the caller's active agency."""
    client = ClientService(db, caller, context=context).create_client(
        agency_id, name=data.name, account_manager_id=data.account_manager_id
    )
    db.commit()
    return ClientResponse.model_validate(client)


@router.get("/clients/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return ClientResponse.model_validate(ClientService(db, caller).get_client(client_id))


@router.patch("/clients/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: UUID,
    data: ClientUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    client = ClientService(db, caller, context=context).update_client(
        client_id, name=data.name, account_manager_id=data.account_manager_id
    )
    db.commit()
    return ClientResponse.model_validate(client)


@router.post("/clients/{client_id}/deactivate", response_model=ClientResponse)
async def deactivate_client(
    client_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    client = ClientService(db, caller, context=context).deactivate_client(client_id)
    db.commit()
    return ClientResponse.model_validate(client)


# Contacts
@router.get("/clients/{client_id}/contacts", response_model=List[ContactResponse])
async def list_contacts(
    client_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return [ContactResponse.model_validate(c) for c in ContactService(db, caller).list_contacts(client_id)]


@router.post("/clients/{client_id}/contacts", response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
async def create_contact(
    client_id: UUID,
    data: ContactCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    contact = ContactService(db, caller, context=context).create_contact(
        client_id,
        full_name=data.full_name,
        email=data.email,
        is_client_approver=data.is_client_approver,
    )
    db.commit()
    return ContactResponse.model_validate(contact)


@router.patch("/contacts/{contact_id}", response_model=ContactResponse)
async def update_contact(
    contact_id: UUID,
    data: ContactUpdate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    contact = ContactService(db, caller, context=context).update_contact(
        contact_id,
        full_name=data.full_name,
        email=data.email,
        is_client_approver=data.is_client_approver,
        is_active=data.is_active,
    )
    db.commit()
    return ContactResponse.model_validate(contact)


@router.delete("/contacts/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    contact_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
    context: RequestContext = Depends(get_request_context),
):
    """Delete a contact with no recorded decisions. Otherwise deactivate it."""
    ContactService(db, caller, context=context).delete_contact(contact_id)
    db.commit()
