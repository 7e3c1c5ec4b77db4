"""
app/schemas/response.py

Purpose: Shared response bodies

- Error body rendered by the exception handlers
- Plain acknowledgement messages (product removed, cart cleared, ...)
"""

from pydantic import BaseModel
from typing import Optional, Any


class ErrorResponse(BaseModel):
    """
    Body of every error response: ``{"error", "code", "details"}``.
    """
    error: str
    code: str
    details: Optional[Any] = None


class MessageResponse(BaseModel):
    message: str
