"""Tests for the error taxonomy and its HTTP mapping."""

from uuid import uuid4

import pytest

from agencyflow.api.main import error_status
from agencyflow.core.errors import (
    ForbiddenError,
    ImmutableRecordError,
    InsufficientCreditsError,
    InvalidStateError,
    LedgerRecordError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
    WorkflowError,
)


@pytest.mark.parametrize("error,expected", [
    (ValidationError("bad", field="name"), 422),
    (InvalidStateError("no", current_state="draft", attempted="complete"), 409),
    (ForbiddenError(permission="campaigns:update"), 403),
    (NotFoundError("campaign", uuid4()), 404),
    (InsufficientCreditsError(required=1, available=0), 402),
    (UnauthenticatedError(), 401),
    (ImmutableRecordError("approval", "update"), 409),
    (LedgerRecordError("boom"), 500),
    (WorkflowError("unexpected"), 500),
])
def test_error_status(error, expected):
    assert error_status(error) == expected


def test_subclass_inherits_mapping():
    class StaleVersionError(InvalidStateError):
        pass

    assert error_status(StaleVersionError("stale", "client_review", "approve")) == 409


class TestExtensions:
    def test_validation_field(self):
        assert ValidationError("bad").extensions() == {}
        assert ValidationError("bad", field="amount").extensions() == {"field": "amount"}

    def test_not_found_stringifies_uuid(self):
        entity_id = uuid4()
        error = NotFoundError("deliverable", entity_id)
        assert error.extensions() == {"entity_type": "deliverable", "entity_id": str(entity_id)}
        assert error.message == f"deliverable {entity_id} not found"

    def test_insufficient_credits(self):
        error = InsufficientCreditsError(required=3, available=1)
        assert error.extensions() == {"required": 3, "available": 1}
        assert error.code == "INSUFFICIENT_TOKENS"

    def test_immutable_message(self):
        assert ImmutableRecordError("payment", "delete").message == "payment records cannot be deleted"
