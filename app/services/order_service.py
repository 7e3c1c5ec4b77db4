"""
app/services/order_service.py

Purpose: Checkout and order tracking

- Creates orders from the checkout payload with server-side pricing
- Opens a gateway order for each new order
- Records payments from the checkout callback and from webhooks,
  verified by signature and idempotent per gateway payment id
- Order history and admin status updates (paid / delivered)
"""

from typing import Optional, Dict, Any, List, Tuple

from bson import ObjectId
from pymongo import DESCENDING

from app.db.mongo import get_orders_collection, get_users_collection
from app.core.config import settings
from app.core.exceptions import (
    BadRequestError,
    ConflictError,
    ExternalServiceError,
    PaymentVerificationError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from app.core.logging import get_logger, LogContext
from app.schemas.order import CreateOrderRequest, OrderItemRequest, PaymentCallbackRequest
from app.services.cart_service import clear_cart
from app.services.payment_service import (
    get_payment_gateway,
    to_minor_units,
    verify_payment_signature,
)
from app.services.product_service import get_products_by_ids, find_product_by_name
from utils.constants import (
    MSG_NO_ORDER_ITEMS,
    MSG_ORDER_NOT_FOUND,
    MSG_NOT_ORDER_OWNER,
    MSG_INVALID_ORDER_ID,
    MSG_INVALID_SIGNATURE,
    MSG_ALREADY_PAID,
    MSG_PRODUCT_NOT_FOUND,
    CAPTURE_EVENTS,
)
from utils.time_utils import utcnow
from utils.validation_utils import parse_object_id

logger = get_logger(__name__)


# ==============================================
# PRICING
# ==============================================

def calculate_prices(
    order_items: List[Dict[str, Any]],
    tax_price: float = 0,
    shipping_price: float = 0,
) -> Tuple[float, float]:
    """
    Computes (itemsPrice, totalPrice) from snapshotted order lines.

    Both values are rounded to 2 decimals.
    """
    items_price = round(sum(float(i["price"]) * int(i["qty"]) for i in order_items), 2)
    total_price = round(items_price + float(tax_price) + float(shipping_price), 2)
    return items_price, total_price


async def resolve_order_items(items: List[OrderItemRequest]) -> List[Dict[str, Any]]:
    """
    Maps checkout lines onto catalog products and snapshots them.

    A line's ``product`` is used as an ObjectId when it is one; otherwise
    the product is looked up by ``name`` (the browser may carry its own
    ids). Name, price and image come from the catalog, not the client.

    Raises:
        ResourceNotFoundError: If a line matches no product
    """
    by_id = await get_products_by_ids([i.product for i in items if i.product])

    snapshots = []
    for item in items:
        product = None
        oid = parse_object_id(item.product)
        if oid is not None:
            product = by_id.get(oid)
        if product is None:
            product = await find_product_by_name(item.name)
        if product is None:
            raise ResourceNotFoundError(
                MSG_PRODUCT_NOT_FOUND,
                details={"product": item.product, "name": item.name}
            )

        snapshots.append({
            "name": product.get("name", item.name),
            "qty": item.qty,
            "price": float(product.get("price", 0)),
            "image": product.get("image") or item.image,
            "product": product["_id"],
        })

    return snapshots


# ==============================================
# LOOKUPS
# ==============================================

def _require_order_id(order_id) -> ObjectId:
    oid = parse_object_id(order_id)
    if oid is None:
        raise BadRequestError(MSG_INVALID_ORDER_ID, details={"order_id": str(order_id)})
    return oid


def _check_access(order: Dict[str, Any], user: Dict[str, Any]):
    if user.get("isAdmin"):
        return
    if order.get("user") != user.get("_id"):
        raise PermissionDeniedError(MSG_NOT_ORDER_OWNER)


async def _load_order(order_id) -> Dict[str, Any]:
    oid = _require_order_id(order_id)
    orders = get_orders_collection()
    order = await orders.find_one({"_id": oid})
    if not order:
        raise ResourceNotFoundError(MSG_ORDER_NOT_FOUND, details={"order_id": str(order_id)})
    return order


async def _populate_users(orders: List[Dict[str, Any]], fields: Tuple[str, ...]) -> List[Dict[str, Any]]:
    """
    Replaces each order's ``user`` id with a ``{_id, <fields>}`` summary.
    Users that no longer exist become None.
    """
    user_ids = list({o.get("user") for o in orders if o.get("user") is not None})
    projection = {field: 1 for field in fields}

    users_by_id = {}
    if user_ids:
        users = get_users_collection()
        docs = await users.find({"_id": {"$in": user_ids}}, projection).to_list(length=None)
        users_by_id = {doc["_id"]: doc for doc in docs}

    return [{**o, "user": users_by_id.get(o.get("user"))} for o in orders]


async def get_order(order_id, user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fetches an order with its user populated (name, email).

    Raises:
        ResourceNotFoundError: If the order does not exist
        PermissionDeniedError: If the caller neither owns it nor is admin
    """
    order = await _load_order(order_id)
    _check_access(order, user)
    populated = await _populate_users([order], ("name", "email"))
    return populated[0]


async def list_user_orders(user_id: ObjectId) -> List[Dict[str, Any]]:
    orders = get_orders_collection()
    cursor = orders.find({"user": user_id}).sort("createdAt", DESCENDING)
    return await cursor.to_list(length=None)


async def list_all_orders() -> List[Dict[str, Any]]:
    """
    All orders, newest first, with ``user`` populated as ``{_id, name}``.
    """
    orders = get_orders_collection()
    docs = await orders.find({}).sort("createdAt", DESCENDING).to_list(length=None)
    return await _populate_users(docs, ("name",))


# ==============================================
# CHECKOUT
# ==============================================

async def create_order(user: Dict[str, Any], request: CreateOrderRequest) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Creates an unpaid order and the matching gateway order.

    Returns:
        (order document, gateway order)

    Raises:
        BadRequestError: If there are no items or the total is not positive
        ResourceNotFoundError: If an item matches no product
        ExternalServiceError: If the gateway order cannot be created; the
            unpaid order is kept
    """
    if not request.orderItems:
        raise BadRequestError(MSG_NO_ORDER_ITEMS)

    order_items = await resolve_order_items(request.orderItems)
    items_price, total_price = calculate_prices(
        order_items, request.taxPrice, request.shippingPrice
    )
    if total_price <= 0:
        raise BadRequestError("Order total must be greater than zero")

    if request.totalPrice is not None and round(request.totalPrice, 2) != total_price:
        logger.warning(
            f"Client total {request.totalPrice} differs from computed {total_price}",
            extra={"user_id": str(user["_id"])}
        )

    now = utcnow()
    order = {
        "user": user["_id"],
        "orderItems": order_items,
        "shippingAddress": request.shippingAddress.model_dump(),
        "paymentMethod": request.paymentMethod,
        "itemsPrice": items_price,
        "taxPrice": round(float(request.taxPrice), 2),
        "shippingPrice": round(float(request.shippingPrice), 2),
        "totalPrice": total_price,
        "currency": settings.PAYMENT_CURRENCY,
        "isPaid": False,
        "paidAt": None,
        "isDelivered": False,
        "deliveredAt": None,
        "createdAt": now,
        "updatedAt": now,
    }

    orders = get_orders_collection()
    result = await orders.insert_one(order)
    order["_id"] = result.inserted_id
    order_id = str(result.inserted_id)

    with LogContext(user_id=str(user["_id"]), order_id=order_id):
        logger.info(f"Order created: {len(order_items)} items, total {total_price}")

        try:
            gateway_order = await get_payment_gateway().create_order(
                amount=to_minor_units(total_price),
                currency=settings.PAYMENT_CURRENCY,
                receipt=order_id,
                notes={"userId": str(user["_id"])},
            )
        except ExternalServiceError:
            logger.error("Gateway order creation failed; order left unpaid")
            raise

        await orders.update_one(
            {"_id": result.inserted_id},
            {"$set": {"gatewayOrderId": gateway_order.get("id"), "updatedAt": utcnow()}}
        )
        order["gatewayOrderId"] = gateway_order.get("id")

    return order, gateway_order


# ==============================================
# PAYMENTS
# ==============================================

async def _record_payment(order: Dict[str, Any], payment_result: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """
    Marks an order paid exactly once.

    The write is conditional on ``isPaid: False``, so two deliveries of the
    same payment (callback and webhook, or retries) never both apply.

    Returns:
        (order, changed) where ``changed`` is False for a replay of the
        payment already recorded

    Raises:
        ConflictError: If the order was already paid by a different payment
    """
    payment_id = payment_result["id"]

    if not order.get("isPaid"):
        now = utcnow()
        orders = get_orders_collection()
        updated = await orders.find_one_and_update(
            {"_id": order["_id"], "isPaid": False},
            {
                "$set": {
                    "isPaid": True,
                    "paidAt": now,
                    "paymentResult": payment_result,
                    "updatedAt": now,
                }
            },
            return_document=True
        )
        if updated:
            logger.info(f"Order paid with payment {payment_id}")
            await clear_cart(order["user"])
            return updated, True

        # Another writer got there first
        order = await orders.find_one({"_id": order["_id"]})

    recorded = (order.get("paymentResult") or {}).get("id")
    if recorded == payment_id:
        logger.info(f"Duplicate payment notification for {payment_id}")
        return order, False

    logger.warning(f"Order already paid by {recorded}, rejecting {payment_id}")
    raise ConflictError(MSG_ALREADY_PAID, details={"payment_id": payment_id})


async def mark_order_paid(order_id, user: Dict[str, Any], callback: PaymentCallbackRequest) -> Dict[str, Any]:
    """
    Records the payment reported by the checkout widget's success handler.

    Raises:
        PaymentVerificationError: If the payment id or signature is missing
            or does not match the order's gateway order
        ConflictError: If the order was paid by another payment
    """
    order = await _load_order(order_id)
    _check_access(order, user)

    payment_id = callback.payment_id
    gateway_order_id = order.get("gatewayOrderId")

    with LogContext(user_id=str(user["_id"]), order_id=str(order["_id"]), payment_id=payment_id):
        if callback.razorpay_order_id and callback.razorpay_order_id != gateway_order_id:
            logger.warning("Payment callback names a different gateway order")
            raise PaymentVerificationError(MSG_INVALID_SIGNATURE)

        if not verify_payment_signature(gateway_order_id, payment_id, callback.razorpay_signature):
            logger.warning("Payment callback signature rejected")
            raise PaymentVerificationError(MSG_INVALID_SIGNATURE)

        payment_result = {
            "id": payment_id,
            "status": callback.status,
            "update_time": callback.update_time,
            "email_address": callback.email_address,
        }
        updated, _ = await _record_payment(order, payment_result)

    return updated


def _extract_payment_entity(event: Dict[str, Any]) -> Dict[str, Any]:
    payload = event.get("payload") or {}
    return ((payload.get("payment") or {}).get("entity")) or {}


async def apply_payment_event(event: Dict[str, Any]) -> str:
    """
    Applies a verified gateway webhook event.

    Returns:
        ``processed`` when an order was marked paid, ``duplicate`` when the
        payment was already recorded, ``ignored`` otherwise (other events,
        unknown orders, amount mismatches, conflicting payments)
    """
    event_type = event.get("event")
    if event_type not in CAPTURE_EVENTS:
        logger.debug(f"Ignoring webhook event {event_type}")
        return "ignored"

    payment = _extract_payment_entity(event)
    payment_id = payment.get("id")
    gateway_order_id = payment.get("order_id")
    if not payment_id or not gateway_order_id:
        logger.warning(f"Webhook {event_type} without payment/order id")
        return "ignored"

    orders = get_orders_collection()
    order = await orders.find_one({"gatewayOrderId": gateway_order_id})
    if not order:
        logger.warning(f"Webhook for unknown gateway order {gateway_order_id}")
        return "ignored"

    with LogContext(order_id=str(order["_id"]), payment_id=payment_id):
        amount = payment.get("amount")
        if amount is not None and int(amount) != to_minor_units(order["totalPrice"]):
            logger.warning(
                f"Webhook amount {amount} does not match order total {order['totalPrice']}"
            )
            return "ignored"

        payment_result = {
            "id": payment_id,
            "status": payment.get("status"),
            "update_time": utcnow().isoformat(),
            "email_address": payment.get("email"),
        }
        try:
            _, changed = await _record_payment(order, payment_result)
        except ConflictError:
            return "ignored"

    return "processed" if changed else "duplicate"


# ==============================================
# ADMIN
# ==============================================

async def update_order_status(order_id, is_paid: Optional[bool] = None, is_delivered: Optional[bool] = None) -> Dict[str, Any]:
    """
    Flips paid / delivered flags. Flags only move from False to True; the
    matching timestamp is set the first time.
    """
    order = await _load_order(order_id)
    now = utcnow()
    changes: Dict[str, Any] = {}

    if is_paid is True and not order.get("isPaid"):
        changes["isPaid"] = True
    if (is_paid is True or order.get("isPaid")) and not order.get("paidAt"):
        changes["paidAt"] = now
    if is_delivered is True and not order.get("isDelivered"):
        changes["isDelivered"] = True
    if (is_delivered is True or order.get("isDelivered")) and not order.get("deliveredAt"):
        changes["deliveredAt"] = now

    if not changes:
        return order

    changes["updatedAt"] = now
    orders = get_orders_collection()
    updated = await orders.find_one_and_update(
        {"_id": order["_id"]},
        {"$set": changes},
        return_document=True
    )

    logger.info(
        f"Order status updated: {sorted(k for k in changes if k != 'updatedAt')}",
        extra={"order_id": str(order["_id"])}
    )
    return updated
