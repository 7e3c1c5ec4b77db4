"""
app/services/cart_service.py

Purpose: Server-side cart persistence

- One cart document per user, one line per product
- Atomic add (positional increment, else conditional push with upsert)
- Whole-cart replace for syncing the browser's local copy in one write
- Cart view with current product data and total
"""

from typing import Optional, Dict, Any, List, Iterable, Tuple

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from app.db.mongo import get_carts_collection
from app.core.exceptions import ResourceNotFoundError, ConflictError
from app.core.logging import get_logger, LogContext
from app.services.product_service import get_products_by_ids
from utils.constants import MSG_PRODUCT_NOT_FOUND, MSG_CART_NOT_FOUND, MSG_ITEM_NOT_IN_CART
from utils.document_utils import serialize_document
from utils.time_utils import utcnow
from utils.validation_utils import parse_object_id

logger = get_logger(__name__)

# Attempts for an add that keeps colliding with concurrent cart creation
MAX_UPSERT_ATTEMPTS = 3


def merge_cart_items(items: Iterable[Tuple[Any, int]]) -> List[Dict[str, Any]]:
    """
    Collapses (product, quantity) pairs into cart lines.

    Repeated products are summed into their first line; first-seen order
    is kept.

    Returns:
        List of ``{"product": ObjectId, "quantity": int}``
    """
    merged: Dict[ObjectId, Dict[str, Any]] = {}
    for product, quantity in items:
        oid = parse_object_id(product)
        if oid is None:
            continue
        if oid in merged:
            merged[oid]["quantity"] += quantity
        else:
            merged[oid] = {"product": oid, "quantity": quantity}
    return list(merged.values())


def build_cart_view(
    cart: Optional[Dict[str, Any]],
    products_by_id: Dict[ObjectId, Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Renders a cart with its products populated and the current total.

    Lines whose product was deleted are kept with ``product: None`` and
    contribute nothing to the total.
    """
    if not cart:
        return {"items": [], "total": 0}

    items = []
    total = 0.0
    for line in cart.get("items", []):
        product = products_by_id.get(line.get("product"))
        quantity = int(line.get("quantity", 0))
        if product is not None:
            total += float(product.get("price", 0)) * quantity
        items.append({
            "product": serialize_document(product),
            "quantity": quantity,
        })

    return {
        "_id": str(cart["_id"]) if cart.get("_id") is not None else None,
        "user": str(cart["user"]) if cart.get("user") is not None else None,
        "items": items,
        "total": round(total, 2),
        "updatedAt": cart["updatedAt"].isoformat() if cart.get("updatedAt") else None,
    }


async def _render(cart: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not cart:
        return build_cart_view(None, {})
    product_ids = [line.get("product") for line in cart.get("items", [])]
    products_by_id = await get_products_by_ids(product_ids)
    return build_cart_view(cart, products_by_id)


async def get_cart(user_id: ObjectId) -> Dict[str, Any]:
    """
    Returns the user's cart view (empty view if the user has no cart).
    """
    carts = get_carts_collection()
    cart = await carts.find_one({"user": user_id})
    return await _render(cart)


async def _increment_line(carts, user_id: ObjectId, product_id: ObjectId, quantity: int) -> bool:
    result = await carts.update_one(
        {"user": user_id, "items.product": product_id},
        {
            "$inc": {"items.$.quantity": quantity},
            "$set": {"updatedAt": utcnow()},
        }
    )
    return result.matched_count > 0


async def _push_line(carts, user_id: ObjectId, product_id: ObjectId, quantity: int):
    now = utcnow()
    # The $ne guard makes the push a no-match if the line appeared meanwhile;
    # with upsert that surfaces as a duplicate key on the unique user index.
    await carts.update_one(
        {"user": user_id, "items.product": {"$ne": product_id}},
        {
            "$push": {"items": {"product": product_id, "quantity": quantity}},
            "$set": {"updatedAt": now},
            "$setOnInsert": {"createdAt": now},
        },
        upsert=True
    )


async def add_item(user_id: ObjectId, product_id: str, quantity: int) -> Dict[str, Any]:
    """
    Adds ``quantity`` of a product to the user's cart.

    Increments the existing line if the product is already in the cart,
    otherwise appends a line, creating the cart if needed.

    Raises:
        ResourceNotFoundError: If the product does not exist
        ConflictError: If the write keeps racing with concurrent updates
    """
    products = await get_products_by_ids([product_id])
    oid = parse_object_id(product_id)
    if oid is None or oid not in products:
        raise ResourceNotFoundError(MSG_PRODUCT_NOT_FOUND, details={"product_id": product_id})

    carts = get_carts_collection()

    with LogContext(user_id=str(user_id), product_id=str(oid)):
        for attempt in range(1, MAX_UPSERT_ATTEMPTS + 1):
            if await _increment_line(carts, user_id, oid, quantity):
                break
            try:
                await _push_line(carts, user_id, oid, quantity)
                break
            except DuplicateKeyError:
                logger.debug(f"Cart upsert collided (attempt {attempt}/{MAX_UPSERT_ATTEMPTS})")
        else:
            raise ConflictError("Cart is being updated concurrently, please retry")

        logger.info(f"Added {quantity} to cart")

    cart = await carts.find_one({"user": user_id})
    return await _render(cart)


async def replace_items(user_id: ObjectId, items: List[Tuple[str, int]]) -> Dict[str, Any]:
    """
    Replaces the whole cart with ``items`` in a single write.

    Raises:
        ResourceNotFoundError: If any product does not exist
    """
    lines = merge_cart_items(items)
    requested = {str(p) for p, _ in items}
    products = await get_products_by_ids([line["product"] for line in lines])

    missing = sorted(pid for pid in requested if parse_object_id(pid) not in products)
    if missing:
        raise ResourceNotFoundError(MSG_PRODUCT_NOT_FOUND, details={"product_ids": missing})

    now = utcnow()
    carts = get_carts_collection()
    cart = await carts.find_one_and_update(
        {"user": user_id},
        {
            "$set": {"items": lines, "updatedAt": now},
            "$setOnInsert": {"createdAt": now},
        },
        upsert=True,
        return_document=True
    )

    logger.info(f"Cart replaced with {len(lines)} lines", extra={"user_id": str(user_id)})
    return build_cart_view(cart, products)


async def remove_item(user_id: ObjectId, product_id: str) -> Dict[str, Any]:
    """
    Removes a product's line from the cart.

    Raises:
        ResourceNotFoundError: If the user has no cart or the product is not in it
    """
    carts = get_carts_collection()
    oid = parse_object_id(product_id)

    if oid is not None:
        cart = await carts.find_one_and_update(
            {"user": user_id, "items.product": oid},
            {
                "$pull": {"items": {"product": oid}},
                "$set": {"updatedAt": utcnow()},
            },
            return_document=True
        )
        if cart:
            logger.info("Removed item from cart", extra={"user_id": str(user_id), "product_id": str(oid)})
            return await _render(cart)

    if not await carts.find_one({"user": user_id}, {"_id": 1}):
        raise ResourceNotFoundError(MSG_CART_NOT_FOUND)
    raise ResourceNotFoundError(MSG_ITEM_NOT_IN_CART, details={"product_id": product_id})


async def clear_cart(user_id: ObjectId) -> bool:
    """
    Empties the user's cart.

    Returns:
        True if a cart existed
    """
    carts = get_carts_collection()
    result = await carts.update_one(
        {"user": user_id},
        {"$set": {"items": [], "updatedAt": utcnow()}}
    )
    if result.matched_count:
        logger.info("Cart cleared", extra={"user_id": str(user_id)})
    return result.matched_count > 0
