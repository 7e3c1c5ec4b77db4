"""
app/api/orders.py

Purpose: Checkout and order tracking endpoints

- Create order (returns the gateway order for the checkout widget)
- Payment callback from the checkout success handler
- Customer order history and detail
- Admin listing and status updates
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user, require_admin
from app.core.config import settings
from app.schemas.order import CreateOrderRequest, PaymentCallbackRequest, OrderStatusUpdateRequest
from app.services import order_service
from utils.document_utils import serialize_document

router = APIRouter()


@router.post("", status_code=201)
async def create_order(body: CreateOrderRequest, user=Depends(get_current_user)):
    order, gateway_order = await order_service.create_order(user, body)
    return {
        "createdOrder": serialize_document(order),
        "razorpayOrder": gateway_order,
        "razorpayKeyId": settings.RAZORPAY_KEY_ID,
    }


@router.get("")
async def list_orders(admin=Depends(require_admin)):
    """All orders (admin)."""
    orders = await order_service.list_all_orders()
    return [serialize_document(o) for o in orders]


# Declared before /{order_id} so "myorders" is not taken for an id
@router.get("/myorders")
async def my_orders(user=Depends(get_current_user)):
    orders = await order_service.list_user_orders(user["_id"])
    return [serialize_document(o) for o in orders]


@router.get("/{order_id}")
async def get_order(order_id: str, user=Depends(get_current_user)):
    order = await order_service.get_order(order_id, user)
    return serialize_document(order)


@router.put("/{order_id}/pay")
async def pay_order(order_id: str, body: PaymentCallbackRequest, user=Depends(get_current_user)):
    """
    Record a payment reported by the checkout widget.

    The gateway signature is verified; replays of the same payment return
    the order unchanged.
    """
    order = await order_service.mark_order_paid(order_id, user, body)
    return serialize_document(order)


@router.put("/{order_id}/status")
async def update_order_status(order_id: str, body: OrderStatusUpdateRequest, admin=Depends(require_admin)):
    """Mark an order paid and/or delivered (admin)."""
    order = await order_service.update_order_status(
        order_id, is_paid=body.isPaid, is_delivered=body.isDelivered
    )
    return serialize_document(order)
