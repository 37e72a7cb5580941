"""Access Gate: resolves a caller's permissions for one resource.

Every protected read or write goes through ``AccessGate.authorize_*``. The
gate walks the ownership chain (deliverable -> campaign -> project -> client
-> agency), resolves the permission set that applies at that scope and either
returns an ``AccessGrant`` or raises.

Visibility rules:
- Resource missing, or owned by an agency the caller is not an active member
  of (or by another client, for portal contacts): ``NotFoundError``.
- Caller can see the resource but lacks the permission: ``ForbiddenError``.

Campaign-scope resolution, first match wins for admins and owning account
managers; otherwise grants from every tie the caller has are combined:
1. agency_admin: everything
2. account_manager who owns the client: account manager matrix
3. campaign assignment role (operator / approver / viewer)
4. project user: campaign operator rights across the project
5. project approver: project-tier review rights
6. agency role fallback: internal approvers keep their review matrix,
   everyone else gets read-only visibility

Agency resolution: resource paths take the agency from the ownership
chain and ignore the X-Agency-ID header. The header only picks the agency
for agency-level calls that carry no resource id, such as creating a
creator or a client, through ``Caller.effective_agency_id``.
"""

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session

from agencyflow.core.errors import ForbiddenError, NotFoundError
from agencyflow.db.models import (
    Agency,
    AgencyMembership,
    Campaign,
    CampaignCreator,
    CampaignUser,
    Client,
    Contact,
    Creator,
    Deliverable,
    Payment,
    Project,
    ProjectApprover,
    ProjectUser,
)
from .checker import PermissionChecker
from .permissions import Action, Permission
from .roles import (
    AgencyRole,
    AGENCY_ADMIN_PERMISSIONS,
    ACCOUNT_MANAGER_PERMISSIONS,
    INTERNAL_APPROVER_PERMISSIONS,
    UNASSIGNED_MEMBER_PERMISSIONS,
    CAMPAIGN_OPERATOR_PERMISSIONS,
    PROJECT_APPROVER_PERMISSIONS,
    CLIENT_APPROVER_PERMISSIONS,
    CLIENT_VIEWER_PERMISSIONS,
    get_agency_role_permissions,
    get_campaign_role_permissions,
)


@dataclass
class Caller:
    """
    The authenticated identity behind a request.

    Exactly one of ``user_id`` (agency user) or ``contact`` (client-portal
    contact) is set. ``requested_agency_id`` comes from the X-Agency-ID header.
    """
    user_id: Optional[UUID] = None
    memberships: List[AgencyMembership] = field(default_factory=list)
    contact: Optional[Contact] = None
    requested_agency_id: Optional[UUID] = None

    @property
    def is_contact(self) -> bool:
        return self.contact is not None

    @property
    def actor_id(self) -> Optional[UUID]:
        return self.contact.id if self.contact is not None else self.user_id

    @property
    def actor_type(self) -> str:
        return "contact" if self.contact is not None else "user"

    def active_membership(self, agency_id: UUID) -> Optional[AgencyMembership]:
        for membership in self.memberships:
            if membership.agency_id == agency_id and membership.is_active:
                return membership
        return None

    @property
    def effective_agency_id(self) -> Optional[UUID]:
        """Requested agency when the caller belongs to it, else the first active membership."""
        if self.requested_agency_id and self.active_membership(self.requested_agency_id):
            return self.requested_agency_id
        for membership in self.memberships:
            if membership.is_active:
                return membership.agency_id
        return None


def load_user_caller(db: Session, user_id: UUID, requested_agency_id: Optional[UUID] = None) -> Caller:
    memberships = (
        db.query(AgencyMembership)
        .filter(AgencyMembership.user_id == user_id)
        .order_by(AgencyMembership.created_at.asc())
        .all()
    )
    return Caller(user_id=user_id, memberships=memberships, requested_agency_id=requested_agency_id)


def load_contact_caller(db: Session, contact: Contact) -> Caller:
    return Caller(contact=contact)


class AccessGrant(NamedTuple):
    """Outcome of a successful authorization."""
    agency_id: UUID
    checker: PermissionChecker
    membership: Optional[AgencyMembership] = None
    contact: Optional[Contact] = None


class AccessGate:
    """Authorizes one caller against resources in the ownership hierarchy."""

    def __init__(self, db: Session, caller: Caller):
        self.db = db
        self.caller = caller

    # -- public entry points -------------------------------------------------

    def authorize_agency(self, agency_id: UUID, permission: Union[str, Permission]) -> AccessGrant:
        agency = self.db.get(Agency, agency_id)
        if agency is None or self.caller.is_contact:
            raise NotFoundError("agency", agency_id)
        membership = self._membership(agency_id, "agency", agency_id)
        checker = PermissionChecker(get_agency_role_permissions(membership.role), agency_id)
        return self._grant(agency, checker, permission, membership=membership)

    def authorize_client(self, client_id: UUID, permission) -> Tuple[Client, AccessGrant]:
        client = self.db.get(Client, client_id)
        if client is None:
            raise NotFoundError("client", client_id)
        return client, self._authorize_scope(client, permission, "client", client_id)

    def authorize_project(self, project_id: UUID, permission) -> Tuple[Project, AccessGrant]:
        project = self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        grant = self._authorize_scope(project.client, permission, "project", project_id, project=project)
        return project, grant

    def authorize_campaign(self, campaign_id: UUID, permission) -> Tuple[Campaign, AccessGrant]:
        campaign = self.db.get(Campaign, campaign_id)
        if campaign is None:
            raise NotFoundError("campaign", campaign_id)
        return campaign, self._authorize_campaign_scope(campaign, permission, "campaign", campaign_id)

    def authorize_deliverable(self, deliverable_id: UUID, permission) -> Tuple[Deliverable, AccessGrant]:
        deliverable = self.db.get(Deliverable, deliverable_id)
        if deliverable is None:
            raise NotFoundError("deliverable", deliverable_id)
        grant = self._authorize_campaign_scope(deliverable.campaign, permission, "deliverable", deliverable_id)
        return deliverable, grant

    def authorize_campaign_creator(self, campaign_creator_id: UUID, permission) -> Tuple[CampaignCreator, AccessGrant]:
        campaign_creator = self.db.get(CampaignCreator, campaign_creator_id)
        if campaign_creator is None:
            raise NotFoundError("campaign_creator", campaign_creator_id)
        grant = self._authorize_campaign_scope(
            campaign_creator.campaign, permission, "campaign_creator", campaign_creator_id
        )
        return campaign_creator, grant

    def authorize_payment(self, payment_id: UUID, permission) -> Tuple[Payment, AccessGrant]:
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError("payment", payment_id)
        grant = self._authorize_campaign_scope(
            payment.campaign_creator.campaign, permission, "payment", payment_id
        )
        return payment, grant

    def authorize_creator(self, creator_id: UUID, permission) -> Tuple[Creator, AccessGrant]:
        creator = self.db.get(Creator, creator_id)
        if creator is None or self.caller.is_contact:
            raise NotFoundError("creator", creator_id)
        membership = self._membership(creator.agency_id, "creator", creator_id)
        agency = self.db.get(Agency, creator.agency_id)
        checker = PermissionChecker(get_agency_role_permissions(membership.role), creator.agency_id)
        return creator, self._grant(agency, checker, permission, membership=membership)

    # -- resolution ----------------------------------------------------------

    def _authorize_campaign_scope(self, campaign: Campaign, permission, entity_type: str, entity_id) -> AccessGrant:
        return self._authorize_scope(
            campaign.project.client, permission, entity_type, entity_id,
            project=campaign.project, campaign=campaign,
        )

    def _authorize_scope(
        self,
        client: Client,
        permission,
        entity_type: str,
        entity_id,
        *,
        project: Optional[Project] = None,
        campaign: Optional[Campaign] = None,
    ) -> AccessGrant:
        agency = self.db.get(Agency, client.agency_id)

        if self.caller.is_contact:
            contact = self.caller.contact
            if not contact.is_active or contact.client_id != client.id:
                raise NotFoundError(entity_type, entity_id)
            perms = CLIENT_APPROVER_PERMISSIONS if contact.is_client_approver else CLIENT_VIEWER_PERMISSIONS
            checker = PermissionChecker(perms, client.agency_id)
            return self._grant(agency, checker, permission, contact=contact)

        membership = self._membership(client.agency_id, entity_type, entity_id)
        checker = self._scope_checker(membership, client, project, campaign)
        return self._grant(agency, checker, permission, membership=membership)

    def _scope_checker(
        self,
        membership: AgencyMembership,
        client: Client,
        project: Optional[Project],
        campaign: Optional[Campaign],
    ) -> PermissionChecker:
        agency_id = client.agency_id
        user_id = self.caller.user_id

        if membership.role == AgencyRole.AGENCY_ADMIN.value:
            return PermissionChecker(AGENCY_ADMIN_PERMISSIONS, agency_id)
        if membership.role == AgencyRole.ACCOUNT_MANAGER.value and client.account_manager_id == user_id:
            return PermissionChecker(ACCOUNT_MANAGER_PERMISSIONS, agency_id)

        if membership.role == AgencyRole.INTERNAL_APPROVER.value:
            checker = PermissionChecker(INTERNAL_APPROVER_PERMISSIONS, agency_id)
        else:
            checker = PermissionChecker(UNASSIGNED_MEMBER_PERMISSIONS, agency_id)

        if project is not None:
            if self._exists(ProjectUser, project_id=project.id, user_id=user_id):
                checker = checker.merged(CAMPAIGN_OPERATOR_PERMISSIONS)
            if self._exists(ProjectApprover, project_id=project.id, user_id=user_id):
                checker = checker.merged(PROJECT_APPROVER_PERMISSIONS)

        if campaign is not None:
            assignment = (
                self.db.query(CampaignUser)
                .filter(CampaignUser.campaign_id == campaign.id, CampaignUser.user_id == user_id)
                .first()
            )
            if assignment is not None:
                checker = checker.merged(get_campaign_role_permissions(assignment.role))

        return checker

    def _membership(self, agency_id: UUID, entity_type: str, entity_id) -> AgencyMembership:
        membership = self.caller.active_membership(agency_id)
        if membership is None:
            raise NotFoundError(entity_type, entity_id)
        return membership

    def _exists(self, model, **filters) -> bool:
        return self.db.query(model.id).filter_by(**filters).first() is not None

    def _grant(
        self,
        agency: Agency,
        checker: PermissionChecker,
        permission,
        *,
        membership: Optional[AgencyMembership] = None,
        contact: Optional[Contact] = None,
    ) -> AccessGrant:
        perm = permission if isinstance(permission, Permission) else Permission.from_string(permission)

        if not agency.is_active and perm.action != Action.READ:
            raise ForbiddenError(f"Agency {agency.id} is {agency.status}", permission=str(perm))
        if not checker.has_permission(perm):
            raise ForbiddenError(f"Permission denied: requires {perm}", permission=str(perm))

        return AccessGrant(agency_id=agency.id, checker=checker, membership=membership, contact=contact)
