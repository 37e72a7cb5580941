"""Factory functions for creating test database records.

Each factory creates a model instance, adds it to the session, and flushes
so that generated fields (id, created_at, etc.) are populated. All fields
have sensible defaults but can be overridden via keyword arguments.

Usage::

    from tests.factories import create_agency, create_member

    def test_something(db_session):
        agency = create_agency(db_session, token_balance=3)
        user = create_member(db_session, agency, "operator")
        assert user.memberships[0].role == "operator"
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from agencyflow.core.rbac import load_contact_caller, load_user_caller
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
    DeliverableVersion,
    Payment,
    Project,
    ProjectApprover,
    ProjectUser,
    User,
)


_counter = 0


def _next_id() -> int:
    """Return a monotonically increasing integer for unique default values."""
    global _counter
    _counter += 1
    return _counter


# ---------------------------------------------------------------------------
# Tenancy
# ---------------------------------------------------------------------------


def create_agency(
    session: Session,
    *,
    name: Optional[str] = None,
    status: str = "active",
    token_balance: int = 0,
) -> Agency:
    agency = Agency(
        name=name or f"Test Agency {_next_id()}",
        status=status,
        token_balance=token_balance,
        locale={"currency": "INR", "timezone": "Asia/Kolkata", "language": "en"},
    )
    session.add(agency)
    session.flush()
    return agency


def create_user(
    session: Session,
    *,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    is_active: bool = True,
) -> User:
    n = _next_id()
    user = User(
        email=email or f"user-{n}@example.com",
        full_name=full_name or f"Test User {n}",
        is_active=is_active,
    )
    session.add(user)
    session.flush()
    return user


def create_membership(
    session: Session,
    agency: Agency,
    user: User,
    role: str,
    *,
    is_active: bool = True,
) -> AgencyMembership:
    membership = AgencyMembership(agency_id=agency.id, user_id=user.id, role=role, is_active=is_active)
    session.add(membership)
    session.flush()
    return membership


def create_member(session: Session, agency: Agency, role: str, **kwargs) -> User:
    """A new user with an active membership in ``agency``."""
    user = create_user(session, **kwargs)
    create_membership(session, agency, user, role)
    return user


# ---------------------------------------------------------------------------
# Clients and projects
# ---------------------------------------------------------------------------


def create_client(
    session: Session,
    agency: Agency,
    *,
    name: Optional[str] = None,
    account_manager: Optional[User] = None,
    is_active: bool = True,
) -> Client:
    client = Client(
        agency_id=agency.id,
        name=name or f"Test Client {_next_id()}",
        account_manager_id=account_manager.id if account_manager else None,
        is_active=is_active,
    )
    session.add(client)
    session.flush()
    return client


def create_contact(
    session: Session,
    client: Client,
    *,
    full_name: Optional[str] = None,
    is_client_approver: bool = False,
    is_active: bool = True,
) -> Contact:
    n = _next_id()
    contact = Contact(
        client_id=client.id,
        full_name=full_name or f"Contact {n}",
        email=f"contact-{n}@client.example.com",
        is_client_approver=is_client_approver,
        is_active=is_active,
    )
    session.add(contact)
    session.flush()
    return contact


def create_project(
    session: Session,
    client: Client,
    *,
    name: Optional[str] = None,
    is_archived: bool = False,
    approvers: Iterable[User] = (),
    users: Iterable[User] = (),
) -> Project:
    project = Project(
        client_id=client.id,
        name=name or f"Test Project {_next_id()}",
        is_archived=is_archived,
    )
    session.add(project)
    session.flush()
    for user in approvers:
        session.add(ProjectApprover(project_id=project.id, user_id=user.id))
    for user in users:
        session.add(ProjectUser(project_id=project.id, user_id=user.id))
    session.flush()
    return project


# ---------------------------------------------------------------------------
# Campaigns and deliverables
# ---------------------------------------------------------------------------


def create_campaign(
    session: Session,
    project: Project,
    *,
    name: Optional[str] = None,
    status: str = "active",
    approvers: Iterable[User] = (),
    operators: Iterable[User] = (),
    viewers: Iterable[User] = (),
) -> Campaign:
    campaign = Campaign(
        project_id=project.id,
        name=name or f"Test Campaign {_next_id()}",
        campaign_type="influencer",
        status=status,
        start_date=date(2026, 7, 1),
        end_date=date(2026, 8, 31),
    )
    session.add(campaign)
    session.flush()
    for role, users in (("approver", approvers), ("operator", operators), ("viewer", viewers)):
        for user in users:
            assign_campaign_user(session, campaign, user, role)
    return campaign


def assign_campaign_user(session: Session, campaign: Campaign, user: User, role: str) -> CampaignUser:
    assignment = CampaignUser(campaign_id=campaign.id, user_id=user.id, role=role)
    session.add(assignment)
    session.flush()
    return assignment


def create_deliverable(
    session: Session,
    campaign: Campaign,
    *,
    title: Optional[str] = None,
    status: str = "pending",
) -> Deliverable:
    deliverable = Deliverable(
        campaign_id=campaign.id,
        title=title or f"Reel {_next_id()}",
        deliverable_type="reel",
        status=status,
    )
    session.add(deliverable)
    session.flush()
    return deliverable


def create_version(
    session: Session,
    deliverable: Deliverable,
    *,
    file_name: str = "reel.mp4",
    version_number: Optional[int] = None,
    upload_seq: Optional[int] = None,
) -> DeliverableVersion:
    existing = session.query(DeliverableVersion).filter_by(deliverable_id=deliverable.id).all()
    if upload_seq is None:
        upload_seq = max((v.upload_seq for v in existing), default=0) + 1
    if version_number is None:
        version_number = max((v.version_number for v in existing if v.file_name == file_name), default=0) + 1
    version = DeliverableVersion(
        deliverable_id=deliverable.id,
        file_name=file_name,
        version_number=version_number,
        upload_seq=upload_seq,
        file_url=f"s3://deliverables/{deliverable.id}/{file_name}/{version_number}",
    )
    session.add(version)
    session.flush()
    return version


# ---------------------------------------------------------------------------
# Creators and payments
# ---------------------------------------------------------------------------


def create_creator(
    session: Session,
    agency: Agency,
    *,
    display_name: Optional[str] = None,
    instagram_handle: Optional[str] = "creator_ig",
    youtube_handle: Optional[str] = None,
    is_active: bool = True,
) -> Creator:
    creator = Creator(
        agency_id=agency.id,
        display_name=display_name or f"Creator {_next_id()}",
        instagram_handle=instagram_handle,
        youtube_handle=youtube_handle,
        is_active=is_active,
    )
    session.add(creator)
    session.flush()
    return creator


def create_campaign_creator(session: Session, campaign: Campaign, creator: Creator) -> CampaignCreator:
    campaign_creator = CampaignCreator(
        campaign_id=campaign.id,
        creator_id=creator.id,
        rate_amount=Decimal("25000.00"),
        rate_currency="INR",
    )
    session.add(campaign_creator)
    session.flush()
    return campaign_creator


def create_payment(
    session: Session,
    campaign_creator: CampaignCreator,
    *,
    amount: Decimal = Decimal("10000.00"),
    status: str = "pending",
) -> Payment:
    payment = Payment(
        campaign_creator_id=campaign_creator.id,
        amount=amount,
        currency="INR",
        payment_type="advance",
        status=status,
    )
    session.add(payment)
    session.flush()
    return payment


# ---------------------------------------------------------------------------
# Callers
# ---------------------------------------------------------------------------


def caller_for(session: Session, user: User, agency: Optional[Agency] = None):
    return load_user_caller(session, user.id, agency.id if agency else None)


def contact_caller(session: Session, contact: Contact):
    return load_contact_caller(session, contact)


def build_world(session: Session, *, token_balance: int = 5) -> SimpleNamespace:
    """
    One agency with a client, project, active campaign and creator.

    Roles:
        admin            agency_admin
        manager          account_manager owning the client
        operator         operator, assigned to the campaign as operator
        approver_a/b     internal_approver, the campaign's two approvers
        project_approver operator, not on the project roster until a test adds them
        viewer           operator with no assignment
        outsider         admin of a different agency
        client_approver  contact with client approval rights
        client_viewer    contact without approval rights
    """
    agency = create_agency(session, name="Bright Media", token_balance=token_balance)
    admin = create_member(session, agency, "agency_admin")
    manager = create_member(session, agency, "account_manager")
    operator = create_member(session, agency, "operator")
    approver_a = create_member(session, agency, "internal_approver")
    approver_b = create_member(session, agency, "internal_approver")
    project_approver = create_member(session, agency, "operator")
    viewer = create_member(session, agency, "operator")

    other_agency = create_agency(session, name="Rival Media", token_balance=10)
    outsider = create_member(session, other_agency, "agency_admin")

    client = create_client(session, agency, name="Acme Beverages", account_manager=manager)
    client_approver = create_contact(session, client, is_client_approver=True)
    client_viewer = create_contact(session, client)

    project = create_project(session, client, name="Summer Launch")
    campaign = create_campaign(
        session, project,
        name="Summer Reels",
        approvers=[approver_a, approver_b],
        operators=[operator],
    )
    creator = create_creator(session, agency, instagram_handle="sunny.days")
    campaign_creator = create_campaign_creator(session, campaign, creator)

    return SimpleNamespace(
        agency=agency,
        other_agency=other_agency,
        admin=admin,
        manager=manager,
        operator=operator,
        approver_a=approver_a,
        approver_b=approver_b,
        project_approver=project_approver,
        viewer=viewer,
        outsider=outsider,
        client=client,
        client_approver=client_approver,
        client_viewer=client_viewer,
        project=project,
        campaign=campaign,
        creator=creator,
        campaign_creator=campaign_creator,
    )
