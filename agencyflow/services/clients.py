"""Client accounts and their portal contacts.

Clients are soft-deactivated, never deleted: projects, campaigns and the
activity trail hang off them. A contact is deleted only while it has no
recorded decisions; once it has decided on a deliverable it can only be
deactivated.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func

from agencyflow.core.audit import snapshot
from agencyflow.core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from agencyflow.core.rbac.roles import AgencyRole
from agencyflow.db.models import Approval, Client, Contact
from .base import ScopedService, clean_name, require_active_member

logger = logging.getLogger(__name__)

ACCOUNT_OWNER_ROLES = (AgencyRole.AGENCY_ADMIN.value, AgencyRole.ACCOUNT_MANAGER.value)


def clean_email(value: Optional[str]) -> Optional[str]:
    email = (value or "").strip().lower()
    if not email:
        return None
    local, _, domain = email.partition("@")
    if not local or "." not in domain:
        raise ValidationError(f"Invalid email address: {value}", field="email")
    return email


class ClientService(ScopedService):

    def create_client(self, agency_id: UUID, *, name: str, account_manager_id: Optional[UUID] = None) -> Client:
        """
        Open a client account.

        An account manager who does not name an owner becomes the owner.

        Raises:
            ValidationError: Name too short or already used in the agency, or
                the owner is not an active admin or account manager
        """
        grant = self.gate.authorize_agency(agency_id, "clients:create")
        name = clean_name(name)
        if account_manager_id is None and grant.membership.role == AgencyRole.ACCOUNT_MANAGER.value:
            account_manager_id = self.caller.user_id
        if account_manager_id is not None:
            self._require_account_owner(grant.agency_id, account_manager_id)
        self._require_unique_name(grant.agency_id, name)

        client = Client(agency_id=grant.agency_id, name=name, account_manager_id=account_manager_id)
        self.db.add(client)
        self.db.flush()

        logger.info("client %s created in agency %s", client.id, grant.agency_id)
        self.activity.log(grant.agency_id, "client", client.id, "client.created", after=snapshot(client))
        return client

    def get_client(self, client_id: UUID) -> Client:
        client, _ = self.gate.authorize_client(client_id, "clients:read")
        return client

    def update_client(
        self,
        client_id: UUID,
        *,
        name: Optional[str] = None,
        account_manager_id: Optional[UUID] = None,
    ) -> Client:
        """Rename a client or hand it to another owner. Handing over needs ``clients:manage``."""
        client, grant = self.gate.authorize_client(client_id, "clients:update")
        if account_manager_id is not None and account_manager_id != client.account_manager_id:
            if not grant.checker.has_permission("clients:manage"):
                raise ForbiddenError("Permission denied: requires clients:manage", permission="clients:manage")
            self._require_account_owner(grant.agency_id, account_manager_id)

        before = snapshot(client)
        if name is not None:
            name = clean_name(name)
            if name.lower() != client.name.lower():
                self._require_unique_name(grant.agency_id, name)
            client.name = name
        if account_manager_id is not None:
            client.account_manager_id = account_manager_id
        self.db.flush()

        self.activity.log(
            grant.agency_id, "client", client.id, "client.updated",
            before=before, after=snapshot(client),
        )
        return client

    def deactivate_client(self, client_id: UUID) -> Client:
        client, grant = self.gate.authorize_client(client_id, "clients:manage")
        if not client.is_active:
            raise InvalidStateError(
                "Client is already inactive", current_state="inactive", attempted="deactivate"
            )

        before = snapshot(client)
        client.is_active = False
        self.db.flush()

        logger.info("client %s deactivated", client.id)
        self.activity.log(
            grant.agency_id, "client", client.id, "client.deactivated",
            before=before, after=snapshot(client),
        )
        return client

    def _require_account_owner(self, agency_id: UUID, user_id: UUID) -> None:
        membership = require_active_member(self.db, agency_id, user_id, "account_manager_id")
        if membership.role not in ACCOUNT_OWNER_ROLES:
            raise ValidationError(
                "Client owner must be an agency admin or account manager", field="account_manager_id"
            )

    def _require_unique_name(self, agency_id: UUID, name: str) -> None:
        taken = (
            self.db.query(Client.id)
            .filter(Client.agency_id == agency_id, func.lower(Client.name) == name.lower())
            .first()
        )
        if taken is not None:
            raise ValidationError(f"A client named {name!r} already exists", field="name")


class ContactService(ScopedService):

    def list_contacts(self, client_id: UUID) -> List[Contact]:
        self.gate.authorize_client(client_id, "clients:read")
        return (
            self.db.query(Contact)
            .filter(Contact.client_id == client_id)
            .order_by(Contact.created_at.asc())
            .all()
        )

    def create_contact(
        self,
        client_id: UUID,
        *,
        full_name: str,
        email: Optional[str] = None,
        is_client_approver: bool = False,
    ) -> Contact:
        client, grant = self.gate.authorize_client(client_id, "clients:manage")
        if not client.is_active:
            raise ValidationError("Client is inactive", field="client_id")
        email = clean_email(email)
        if email is not None:
            self._require_unique_email(client.id, email)

        contact = Contact(
            client_id=client.id,
            full_name=clean_name(full_name, "full_name"),
            email=email,
            is_client_approver=is_client_approver,
        )
        self.db.add(contact)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "contact", contact.id, "contact.created",
            after=snapshot(contact), metadata={"client_id": str(client.id)},
        )
        return contact

    def update_contact(
        self,
        contact_id: UUID,
        *,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
        is_client_approver: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> Contact:
        """
        Change a contact. ``None`` leaves a field as it is.

        Dropping the approver flag or deactivating takes the contact off the
        client approval tier. Decisions already recorded stay in the history.
        """
        contact, grant = self._authorize(contact_id)

        before = snapshot(contact)
        if full_name is not None:
            contact.full_name = clean_name(full_name, "full_name")
        if email is not None:
            email = clean_email(email)
            if email is not None and email != contact.email:
                self._require_unique_email(contact.client_id, email)
            contact.email = email
        if is_client_approver is not None:
            contact.is_client_approver = is_client_approver
        if is_active is not None:
            contact.is_active = is_active
        self.db.flush()

        self.activity.log(
            grant.agency_id, "contact", contact.id, "contact.updated",
            before=before, after=snapshot(contact), metadata={"client_id": str(contact.client_id)},
        )
        return contact

    def delete_contact(self, contact_id: UUID) -> None:
        """
        Raises:
            InvalidStateError: Contact has recorded approval decisions
        """
        contact, grant = self._authorize(contact_id)
        decided = self.db.query(Approval.id).filter(Approval.decided_by_contact == contact.id).first()
        if decided is not None:
            raise InvalidStateError(
                "Contact has recorded decisions; deactivate it instead",
                current_state="active" if contact.is_active else "inactive",
                attempted="delete_contact",
            )

        before = snapshot(contact)
        self.db.delete(contact)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "contact", contact_id, "contact.deleted",
            before=before, metadata={"client_id": before["client_id"]},
        )

    def _authorize(self, contact_id: UUID):
        contact = self.db.get(Contact, contact_id)
        if contact is None:
            raise NotFoundError("contact", contact_id)
        _, grant = self.gate.authorize_client(contact.client_id, "clients:manage")
        return contact, grant

    def _require_unique_email(self, client_id: UUID, email: str) -> None:
        taken = (
            self.db.query(Contact.id)
            .filter(Contact.client_id == client_id, func.lower(Contact.email) == email)
            .first()
        )
        if taken is not None:
            raise ValidationError(f"A contact with email {email} already exists for this client", field="email")
