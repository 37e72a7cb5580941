"""Common schemas for the AgencyFlow API."""

from typing import Any, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response.

    Domain errors add their structured fields (``field``, ``current_state``,
    ``required`` ...) next to these.
    """
    error: str
    detail: Optional[str] = None
    code: Optional[str] = None

    class Config:
        extra = "allow"


class SuccessResponse(BaseModel):
    """Standard success response."""
    message: str
    data: Optional[Any] = None
