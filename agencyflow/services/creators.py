"""Creator roster and campaign participation."""

import logging
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional
from uuid import UUID

from agencyflow.core.audit import snapshot
from agencyflow.core.errors import NotFoundError, ValidationError
from agencyflow.db.models import CampaignCreator, Creator
from .base import ScopedService, clean_name, require_campaign_editable

logger = logging.getLogger(__name__)

PLATFORM_HANDLES = ("instagram", "youtube", "tiktok")


class CreatorStatus(str, Enum):
    """Participation of a creator in one campaign."""
    INVITED = "invited"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    REMOVED = "removed"


def parse_amount(value, field: str = "amount") -> Decimal:
    """Positive decimal with at most two places."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be a number", field=field)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero", field=field)
    if amount != amount.quantize(Decimal("0.01")):
        raise ValidationError("Amount cannot have more than two decimal places", field=field)
    return amount


def parse_currency(value: Optional[str]) -> str:
    currency = (value or "INR").strip().upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ValidationError(f"Invalid currency code: {value}", field="currency")
    return currency


class CreatorService(ScopedService):

    def create_creator(
        self,
        agency_id: UUID,
        *,
        display_name: str,
        email: Optional[str] = None,
        instagram_handle: Optional[str] = None,
        youtube_handle: Optional[str] = None,
        tiktok_handle: Optional[str] = None,
    ) -> Creator:
        grant = self.gate.authorize_agency(agency_id, "creators:create")

        creator = Creator(
            agency_id=grant.agency_id,
            display_name=clean_name(display_name, "display_name"),
            email=email,
            instagram_handle=_handle(instagram_handle),
            youtube_handle=_handle(youtube_handle),
            tiktok_handle=_handle(tiktok_handle),
        )
        self.db.add(creator)
        self.db.flush()

        self.activity.log(grant.agency_id, "creator", creator.id, "creator.created", after=snapshot(creator))
        return creator

    def get_creator(self, creator_id: UUID) -> Creator:
        creator, _ = self.gate.authorize_creator(creator_id, "creators:read")
        return creator

    def invite_creator_to_campaign(
        self,
        campaign_id: UUID,
        creator_id: UUID,
        *,
        rate_amount=None,
        rate_currency: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CampaignCreator:
        """
        Invite a creator to a campaign. A creator who was removed earlier is
        invited again on the same row with the new terms.

        Raises:
            NotFoundError: Creator missing or owned by another agency
            ValidationError: Creator inactive, or already on the campaign
        """
        campaign, grant = self.gate.authorize_campaign(campaign_id, "creators:assign")
        require_campaign_editable(campaign, "invite_creator")

        creator = self.db.get(Creator, creator_id)
        if creator is None or creator.agency_id != grant.agency_id:
            raise NotFoundError("creator", creator_id)
        if not creator.is_active:
            raise ValidationError("Creator is inactive", field="creator_id")

        rate = parse_amount(rate_amount, "rate_amount") if rate_amount is not None else None
        currency = parse_currency(rate_currency)
        notes = (notes or "").strip() or None

        campaign_creator = (
            self.db.query(CampaignCreator)
            .filter(CampaignCreator.campaign_id == campaign.id, CampaignCreator.creator_id == creator.id)
            .first()
        )
        if campaign_creator is None:
            before = None
            campaign_creator = CampaignCreator(campaign_id=campaign.id, creator_id=creator.id)
            self.db.add(campaign_creator)
        elif campaign_creator.status == CreatorStatus.REMOVED.value:
            before = snapshot(campaign_creator)
        else:
            raise ValidationError("Creator is already invited to this campaign", field="creator_id")

        campaign_creator.status = CreatorStatus.INVITED.value
        campaign_creator.rate_amount = rate
        campaign_creator.rate_currency = currency
        campaign_creator.notes = notes
        self.db.flush()

        self.activity.log(
            grant.agency_id, "campaign_creator", campaign_creator.id, "campaign_creator.invited",
            before=before, after=snapshot(campaign_creator),
            metadata={"campaign_id": str(campaign.id), "creator_id": str(creator.id)},
        )
        return campaign_creator

    def accept_campaign_invite(self, campaign_creator_id: UUID) -> CampaignCreator:
        """Record the creator's acceptance. Only an open invitation can be accepted."""
        return self._answer_invite(campaign_creator_id, CreatorStatus.ACCEPTED.value)

    def decline_campaign_invite(self, campaign_creator_id: UUID) -> CampaignCreator:
        return self._answer_invite(campaign_creator_id, CreatorStatus.DECLINED.value)

    def remove_creator_from_campaign(self, campaign_creator_id: UUID) -> CampaignCreator:
        """Take a creator off the campaign. The row and its payments are kept."""
        campaign_creator, grant = self.gate.authorize_campaign_creator(campaign_creator_id, "creators:assign")
        require_campaign_editable(campaign_creator.campaign, "remove_creator")
        if campaign_creator.status == CreatorStatus.REMOVED.value:
            raise ValidationError("Creator was already removed from this campaign", field="status")
        return self._set_status(campaign_creator, grant, CreatorStatus.REMOVED.value)

    def _answer_invite(self, campaign_creator_id: UUID, status: str) -> CampaignCreator:
        campaign_creator, grant = self.gate.authorize_campaign_creator(campaign_creator_id, "creators:assign")
        require_campaign_editable(campaign_creator.campaign, f"{status}_invite")
        if campaign_creator.status != CreatorStatus.INVITED.value:
            raise ValidationError(
                f"Cannot answer an invitation with status: {campaign_creator.status}", field="status"
            )
        return self._set_status(campaign_creator, grant, status)

    def _set_status(self, campaign_creator: CampaignCreator, grant, status: str) -> CampaignCreator:
        before = snapshot(campaign_creator)
        campaign_creator.status = status
        self.db.flush()

        logger.info("campaign creator %s: %s -> %s", campaign_creator.id, before["status"], status)
        self.activity.log(
            grant.agency_id, "campaign_creator", campaign_creator.id, f"campaign_creator.{status}",
            before=before, after=snapshot(campaign_creator),
            metadata={"campaign_id": str(campaign_creator.campaign_id)},
        )
        return campaign_creator

    def list_campaign_creators(self, campaign_id: UUID) -> List[CampaignCreator]:
        self.gate.authorize_campaign(campaign_id, "creators:read")
        return self.db.query(CampaignCreator).filter(CampaignCreator.campaign_id == campaign_id).all()


def _handle(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lstrip("@")
    return value or None
