"""Domain error taxonomy.

Every failure a caller can act on is one of these. The API layer maps them to
HTTP responses in ``agencyflow.api.main``; services and the core never build
HTTP errors themselves.
"""

from typing import Any, Dict, Optional
from uuid import UUID


class WorkflowError(Exception):
    """Base class for all domain errors."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def extensions(self) -> Dict[str, Any]:
        """Structured fields returned alongside the message."""
        return {}


class ValidationError(WorkflowError):
    """Input failed a domain rule."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def extensions(self) -> Dict[str, Any]:
        return {"field": self.field} if self.field else {}


class InvalidStateError(WorkflowError):
    """Lifecycle transition not allowed from the current state."""

    code = "INVALID_STATE"

    def __init__(self, message: str, current_state: str, attempted: str):
        super().__init__(message)
        self.current_state = current_state
        self.attempted = attempted

    def extensions(self) -> Dict[str, Any]:
        return {"current_state": self.current_state, "attempted": self.attempted}


class ForbiddenError(WorkflowError):
    """Caller can see the resource but lacks the permission."""

    code = "FORBIDDEN"

    def __init__(self, message: str = "Permission denied", permission: Optional[str] = None):
        super().__init__(message)
        self.permission = permission

    def extensions(self) -> Dict[str, Any]:
        return {"permission": self.permission} if self.permission else {}


class NotFoundError(WorkflowError):
    """Resource missing, or not visible to the caller."""

    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = str(entity_id) if isinstance(entity_id, UUID) else entity_id

    def extensions(self) -> Dict[str, Any]:
        return {"entity_type": self.entity_type, "entity_id": self.entity_id}


class InsufficientCreditsError(WorkflowError):
    """Agency token balance cannot cover a metered operation."""

    code = "INSUFFICIENT_TOKENS"

    def __init__(self, required: int, available: int):
        super().__init__(
            f"Insufficient tokens: {required} required, {available} available"
        )
        self.required = required
        self.available = available

    def extensions(self) -> Dict[str, Any]:
        return {"required": self.required, "available": self.available}


class UnauthenticatedError(WorkflowError):
    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ImmutableRecordError(WorkflowError):
    """Attempt to modify or delete a write-once record."""

    code = "IMMUTABLE_RECORD"

    def __init__(self, entity_type: str, operation: str):
        super().__init__(f"{entity_type} records cannot be {operation}d")
        self.entity_type = entity_type
        self.operation = operation


class LedgerRecordError(WorkflowError):
    """The work record for a debited operation could not be created.

    Raised after the debit has already been refunded.
    """

    code = "LEDGER_RECORD_FAILED"
