"""
app/schemas/cart.py

Purpose: Cart request schemas
"""

from pydantic import BaseModel, Field
from typing import List


class CartItemRequest(BaseModel):
    productId: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1, le=1000)

    class Config:
        json_schema_extra = {
            "example": {"productId": "65f1c0ffee0000000000abcd", "quantity": 2}
        }


class CartReplaceRequest(BaseModel):
    """Full cart pushed from the browser's local-storage copy in one request."""
    items: List[CartItemRequest] = Field(default_factory=list)
