"""Database models for AgencyFlow."""

from agencyflow.db.models.agency import Agency, User, AgencyMembership, AgencyEmailConfig
from agencyflow.db.models.client import Client, Contact, Project, ProjectApprover, ProjectUser
from agencyflow.db.models.campaign import Campaign, CampaignUser, CampaignAttachment
from agencyflow.db.models.deliverable import Deliverable, DeliverableVersion, Approval
from agencyflow.db.models.creator import Creator, CampaignCreator, Payment
from agencyflow.db.models.analytics import SocialDataJob, AnalyticsSnapshot, CreatorSocialPost
from agencyflow.db.models.activity import ActivityLogEntry
from agencyflow.db.models.outbox import OutboxMessage

__all__ = [
    "Agency",
    "User",
    "AgencyMembership",
    "AgencyEmailConfig",
    "Client",
    "Contact",
    "Project",
    "ProjectApprover",
    "ProjectUser",
    "Campaign",
    "CampaignUser",
    "CampaignAttachment",
    "Deliverable",
    "DeliverableVersion",
    "Approval",
    "Creator",
    "CampaignCreator",
    "Payment",
    "SocialDataJob",
    "AnalyticsSnapshot",
    "CreatorSocialPost",
    "ActivityLogEntry",
    "OutboxMessage",
]
