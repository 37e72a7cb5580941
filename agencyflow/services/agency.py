"""Agency settings: SMTP configuration, token purchases and member roles."""

import logging
import re
from typing import Optional
from uuid import UUID

from agencyflow.core.audit import snapshot
from agencyflow.core.errors import NotFoundError, ValidationError
from agencyflow.core.ledger import CreditLedger
from agencyflow.core.rbac.roles import AgencyRole
from agencyflow.db.models import AgencyEmailConfig, AgencyMembership
from .base import ScopedService

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AgencyService(ScopedService):

    def get_balance(self, agency_id: UUID) -> int:
        self.gate.authorize_agency(agency_id, "agency:read")
        return CreditLedger(self.db).balance(agency_id)

    def credit_tokens(self, agency_id: UUID, amount: int, *, reason: Optional[str] = None) -> int:
        """Add purchased tokens. Returns the new balance."""
        grant = self.gate.authorize_agency(agency_id, "agency:manage")
        ledger = CreditLedger(self.db)
        before = ledger.balance(agency_id)
        new_balance = ledger.credit(agency_id, amount)

        logger.info("agency %s credited %s token(s), balance %s", agency_id, amount, new_balance)
        self.activity.log(
            grant.agency_id, "agency", agency_id, "agency.tokens_credited",
            before={"token_balance": before},
            after={"token_balance": new_balance},
            metadata={"amount": amount, "reason": reason},
        )
        return new_balance

    # Email configuration

    def get_email_config(self, agency_id: UUID) -> Optional[AgencyEmailConfig]:
        """Stored SMTP settings, or None. Callers must not expose ``smtp_password``."""
        self.gate.authorize_agency(agency_id, "email_config:read")
        return self.db.query(AgencyEmailConfig).filter(AgencyEmailConfig.agency_id == agency_id).first()

    def save_email_config(
        self,
        agency_id: UUID,
        *,
        smtp_host: str,
        smtp_port: int,
        from_email: str,
        smtp_secure: bool = False,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_name: Optional[str] = None,
    ) -> AgencyEmailConfig:
        """
        Create or replace the agency's SMTP settings.

        A blank ``smtp_password`` keeps the stored one.
        """
        grant = self.gate.authorize_agency(agency_id, "email_config:configure")

        smtp_host = (smtp_host or "").strip()
        if not smtp_host:
            raise ValidationError("SMTP host is required", field="smtp_host")
        if not isinstance(smtp_port, int) or not 1 <= smtp_port <= 65535:
            raise ValidationError("SMTP port must be between 1 and 65535", field="smtp_port")
        from_email = (from_email or "").strip()
        if not EMAIL_PATTERN.match(from_email):
            raise ValidationError("From address is not a valid email", field="from_email")

        config = self.db.query(AgencyEmailConfig).filter(AgencyEmailConfig.agency_id == agency_id).first()
        before = snapshot(config)
        if config is None:
            config = AgencyEmailConfig(agency_id=agency_id)
            self.db.add(config)

        config.smtp_host = smtp_host
        config.smtp_port = smtp_port
        config.smtp_secure = smtp_secure
        config.smtp_username = smtp_username or None
        if smtp_password:
            config.smtp_password = smtp_password
        config.from_email = from_email
        config.from_name = from_name or None
        self.db.flush()

        self.activity.log(
            grant.agency_id, "agency_email_config", config.id, "agency.email_config_saved",
            before=before, after=snapshot(config),
        )
        return config

    # Members

    def update_membership_role(self, membership_id: UUID, role: str) -> AgencyMembership:
        membership = self.db.get(AgencyMembership, membership_id)
        if membership is None:
            raise NotFoundError("agency_membership", membership_id)
        grant = self.gate.authorize_agency(membership.agency_id, "members:manage")
        try:
            role = AgencyRole(role)
        except ValueError:
            raise ValidationError(f"Unknown agency role: {role}", field="role")

        if membership.role == AgencyRole.AGENCY_ADMIN.value and role != AgencyRole.AGENCY_ADMIN:
            other_admins = (
                self.db.query(AgencyMembership.id)
                .filter(
                    AgencyMembership.agency_id == membership.agency_id,
                    AgencyMembership.role == AgencyRole.AGENCY_ADMIN.value,
                    AgencyMembership.is_active.is_(True),
                    AgencyMembership.id != membership.id,
                )
                .count()
            )
            if other_admins == 0:
                raise ValidationError("An agency must keep at least one admin", field="role")

        before = snapshot(membership)
        membership.role = role.value
        self.db.flush()

        self.activity.log(
            grant.agency_id, "agency_membership", membership.id, "agency.member_role_changed",
            before=before, after=snapshot(membership),
        )
        return membership
