"""
app/schemas/order.py

Purpose: Order and payment request schemas

- Checkout body sent by the cart page
- Gateway checkout callback (client-side handler payload)
- Admin status update
"""

from pydantic import BaseModel, Field, model_validator
from typing import List, Optional

from utils.constants import PAYMENT_METHOD_RAZORPAY


class OrderItemRequest(BaseModel):
    """
    A cart line as the browser sends it at checkout.

    ``product`` is either a catalog ObjectId or a client-side id; the
    latter is resolved by ``name``. ``quantity`` is accepted as an alias
    for ``qty``.
    """
    name: Optional[str] = None
    qty: int = Field(default=1, ge=1, le=1000)
    price: Optional[float] = None
    image: Optional[str] = None
    product: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def accept_quantity_alias(cls, data):
        if isinstance(data, dict) and "qty" not in data and "quantity" in data:
            data = {**data, "qty": data["quantity"]}
        return data


class ShippingAddress(BaseModel):
    address: str = ""
    city: str = ""
    postalCode: str = ""
    country: str = ""
    phone: Optional[str] = None


class CreateOrderRequest(BaseModel):
    orderItems: List[OrderItemRequest] = Field(default_factory=list)
    shippingAddress: ShippingAddress = Field(default_factory=ShippingAddress)
    paymentMethod: str = PAYMENT_METHOD_RAZORPAY
    # Client-computed totals; the server recomputes itemsPrice/totalPrice
    itemsPrice: Optional[float] = None
    taxPrice: float = Field(default=0, ge=0)
    shippingPrice: float = Field(default=0, ge=0)
    totalPrice: Optional[float] = None

    class Config:
        json_schema_extra = {
            "example": {
                "orderItems": [
                    {"name": "Pink Flower", "qty": 2, "price": 199, "image": "assets/p1.jpeg", "product": "1"}
                ],
                "shippingAddress": {
                    "address": "12 MG Road",
                    "city": "Pune",
                    "postalCode": "411001",
                    "country": "India",
                    "phone": "9876543210"
                },
                "paymentMethod": "razorpay",
                "taxPrice": 0,
                "shippingPrice": 0
            }
        }


class PaymentCallbackRequest(BaseModel):
    """
    Body of ``PUT /orders/{id}/pay`` sent from the checkout handler.

    ``id`` carries the gateway payment id; ``razorpay_payment_id`` is
    accepted as well since that is the name the checkout widget uses.
    """
    id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None

    @property
    def payment_id(self) -> Optional[str]:
        return self.razorpay_payment_id or self.id


class OrderStatusUpdateRequest(BaseModel):
    isPaid: Optional[bool] = None
    isDelivered: Optional[bool] = None
