"""Creator payments.

``paid`` is one-way: the payment lifecycle has no edge out of it and paid rows
are immutable at the ORM and database level.
"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from agencyflow.core.audit import snapshot
from agencyflow.core.errors import ValidationError
from agencyflow.core.lifecycle import PAYMENT_LIFECYCLE, PaymentTransition, transition_entity
from agencyflow.db.models import Payment
from .base import ScopedService
from .creators import parse_amount, parse_currency

logger = logging.getLogger(__name__)

PAYMENT_TYPES = ("advance", "milestone", "final")


class PaymentService(ScopedService):

    def create_payment(
        self,
        campaign_creator_id: UUID,
        *,
        amount,
        payment_type: str,
        currency: Optional[str] = None,
        payment_date: Optional[date] = None,
        payment_reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Payment:
        campaign_creator, grant = self.gate.authorize_campaign_creator(campaign_creator_id, "payments:create")
        if payment_type not in PAYMENT_TYPES:
            raise ValidationError(f"Unknown payment type: {payment_type}", field="payment_type")

        payment = Payment(
            campaign_creator_id=campaign_creator.id,
            amount=parse_amount(amount),
            currency=parse_currency(currency or campaign_creator.rate_currency),
            payment_type=payment_type,
            payment_date=payment_date,
            payment_reference=payment_reference,
            notes=notes,
            created_by=self.caller.user_id,
        )
        self.db.add(payment)
        self.db.flush()

        self.activity.log(
            grant.agency_id, "payment", payment.id, "payment.created",
            after=snapshot(payment), metadata={"campaign_creator_id": str(campaign_creator.id)},
        )
        return payment

    def list_payments(self, campaign_creator_id: UUID) -> List[Payment]:
        self.gate.authorize_campaign_creator(campaign_creator_id, "payments:read")
        return (
            self.db.query(Payment)
            .filter(Payment.campaign_creator_id == campaign_creator_id)
            .order_by(Payment.created_at.asc())
            .all()
        )

    def start_processing(self, payment_id: UUID) -> Payment:
        return self._transition(payment_id, PaymentTransition.START_PROCESSING)

    def mark_paid(
        self,
        payment_id: UUID,
        *,
        payment_date: Optional[date] = None,
        payment_reference: Optional[str] = None,
    ) -> Payment:
        values = {"payment_date": payment_date or date.today()}
        if payment_reference:
            values["payment_reference"] = payment_reference
        return self._transition(payment_id, PaymentTransition.MARK_PAID, **values)

    def mark_failed(self, payment_id: UUID, *, notes: Optional[str] = None) -> Payment:
        values = {"notes": notes} if notes else {}
        return self._transition(payment_id, PaymentTransition.MARK_FAILED, **values)

    def retry_payment(self, payment_id: UUID) -> Payment:
        return self._transition(payment_id, PaymentTransition.RETRY)

    def _transition(self, payment_id: UUID, transition: PaymentTransition, **values) -> Payment:
        payment, grant = self.gate.authorize_payment(payment_id, "payments:update")
        before = snapshot(payment)
        rule = transition_entity(
            self.db, PAYMENT_LIFECYCLE, payment, transition, permissions=grant.checker, **values
        )
        logger.info("payment %s: %s -> %s", payment.id, rule.from_state.value, rule.to_state.value)
        self.activity.log(
            grant.agency_id, "payment", payment.id, f"payment.{rule.to_state.value}",
            before=before, after=snapshot(payment),
        )
        return payment
