"""
Error response models.

Standardized error responses for the API.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """The ``error`` member of an error response."""

    type: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: ErrorDetail
    request_id: Optional[str] = None
    timestamp: datetime
