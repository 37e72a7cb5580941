"""Prepaid credit ledger.

Agencies spend tokens on metered external fetches. The balance is the single
column ``agencies.token_balance`` and every change is one atomic UPDATE:

- debit:  ``token_balance = token_balance - n WHERE token_balance >= n``
- refund / credit: ``token_balance = token_balance + n``

A debit either succeeds completely or changes nothing, so concurrent debits
can never drive the balance negative. Refunds add back rather than restore a
remembered balance, so they cannot clobber other debits made in between.
"""

import logging
from typing import Callable, Tuple, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agencyflow.core.errors import (
    InsufficientCreditsError,
    LedgerRecordError,
    NotFoundError,
    ValidationError,
    WorkflowError,
)
from agencyflow.db.models import Agency

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CreditLedger:
    """Atomic balance operations on one session."""

    def __init__(self, db: Session):
        self.db = db

    def balance(self, agency_id: UUID) -> int:
        value = self.db.execute(
            select(Agency.token_balance).where(Agency.id == agency_id)
        ).scalar_one_or_none()
        if value is None:
            raise NotFoundError("agency", agency_id)
        return value

    def debit(self, agency_id: UUID, amount: int) -> int:
        """
        Remove ``amount`` tokens if the balance covers it.

        Returns:
            The balance after the debit

        Raises:
            InsufficientCreditsError: Balance is below ``amount``; nothing changed
            NotFoundError: Agency does not exist
        """
        self._check_amount(amount)
        result = self.db.execute(
            update(Agency)
            .where(Agency.id == agency_id, Agency.token_balance >= amount)
            .values(token_balance=Agency.token_balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            available = self.balance(agency_id)
            raise InsufficientCreditsError(required=amount, available=available)
        self._expire(agency_id)
        return self.balance(agency_id)

    def credit(self, agency_id: UUID, amount: int) -> int:
        """Add ``amount`` tokens. Returns the new balance."""
        self._check_amount(amount)
        result = self.db.execute(
            update(Agency)
            .where(Agency.id == agency_id)
            .values(token_balance=Agency.token_balance + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError("agency", agency_id)
        self._expire(agency_id)
        return self.balance(agency_id)

    def refund(self, agency_id: UUID, amount: int) -> int:
        """Compensate a debit whose work record could not be created."""
        new_balance = self.credit(agency_id, amount)
        logger.warning("refunded %s token(s) to agency %s, balance now %s", amount, agency_id, new_balance)
        return new_balance

    def run_metered(self, agency_id: UUID, cost: int, create_record: Callable[[], T]) -> Tuple[T, int]:
        """
        Debit ``cost`` and create the record the debit pays for.

        ``create_record`` runs inside a savepoint. If it fails, the savepoint
        is rolled back, the debit is refunded and the error propagates.

        Returns:
            (record, balance after the debit)
        """
        new_balance = self.debit(agency_id, cost)
        try:
            with self.db.begin_nested():
                record = create_record()
                self.db.flush()
        except WorkflowError:
            self.refund(agency_id, cost)
            raise
        except SQLAlchemyError as exc:
            self.refund(agency_id, cost)
            logger.exception("metered record creation failed for agency %s", agency_id)
            raise LedgerRecordError(f"Could not create record: {exc.__class__.__name__}") from exc
        return record, new_balance

    def _check_amount(self, amount: int) -> None:
        if amount <= 0:
            raise ValidationError("Token amount must be positive", field="amount")

    def _expire(self, agency_id: UUID) -> None:
        # In-session Agency objects still hold the pre-UPDATE balance
        agency = self.db.identity_map.get(self.db.identity_key(Agency, agency_id))
        if agency is not None:
            self.db.expire(agency, ["token_balance"])
