"""
app/services/product_service.py

Purpose: Product catalog management

- Catalog listing and lookups
- Admin create / update / delete
- Bulk lookups used by the cart and checkout
"""

from typing import Optional, Dict, Any, List, Iterable

from bson import ObjectId
from pymongo import DESCENDING

from app.db.mongo import get_products_collection
from app.core.exceptions import BadRequestError, ResourceNotFoundError, ValidationError
from app.core.logging import get_logger
from utils.constants import MSG_PRODUCT_NOT_FOUND, MSG_INVALID_PRODUCT_ID, DEFAULT_CATEGORY
from utils.time_utils import utcnow
from utils.validation_utils import parse_object_id, parse_price, parse_form_bool, sanitize_input

logger = get_logger(__name__)


def build_product_fields(
    name: Optional[str] = None,
    description: Optional[str] = None,
    price=None,
    category: Optional[str] = None,
    in_stock=None,
    image: Optional[str] = None,
    partial: bool = False,
) -> Dict[str, Any]:
    """
    Validates admin form input and maps it to document fields.

    With ``partial`` only the supplied values are returned (for updates);
    otherwise ``name`` and ``price`` are required and defaults fill the rest.

    Raises:
        ValidationError: On a missing name, or a malformed / negative price
    """
    fields: Dict[str, Any] = {}

    if name is not None or not partial:
        clean_name = sanitize_input(name, max_length=200)
        if not clean_name:
            raise ValidationError("Product name is required")
        fields["name"] = clean_name

    if price is not None or not partial:
        parsed = parse_price(price)
        if parsed is None:
            raise ValidationError("Price must be a non-negative number", details={"price": price})
        fields["price"] = parsed

    if description is not None or not partial:
        fields["description"] = sanitize_input(description, max_length=2000)

    if category is not None or not partial:
        fields["category"] = sanitize_input(category, max_length=100) or DEFAULT_CATEGORY

    if in_stock is not None or not partial:
        fields["inStock"] = parse_form_bool(in_stock, default=True)

    if image is not None or not partial:
        fields["image"] = (image or "").strip()

    return fields


def _require_object_id(product_id) -> ObjectId:
    oid = parse_object_id(product_id)
    if oid is None:
        raise BadRequestError(MSG_INVALID_PRODUCT_ID, details={"product_id": str(product_id)})
    return oid


async def list_products(category: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Lists catalog products, newest first.

    Args:
        category: Optional exact category filter
    """
    products = get_products_collection()
    query = {"category": category} if category else {}
    cursor = products.find(query).sort("createdAt", DESCENDING)
    return await cursor.to_list(length=None)


async def get_product(product_id) -> Dict[str, Any]:
    """
    Fetches one product.

    Raises:
        BadRequestError: If the id is malformed
        ResourceNotFoundError: If no product has the id
    """
    oid = _require_object_id(product_id)
    products = get_products_collection()
    product = await products.find_one({"_id": oid})
    if not product:
        raise ResourceNotFoundError(MSG_PRODUCT_NOT_FOUND, details={"product_id": str(product_id)})
    return product


async def find_product_by_name(name: Optional[str]) -> Optional[Dict[str, Any]]:
    if not name:
        return None
    products = get_products_collection()
    return await products.find_one({"name": name})


async def image_in_use(image: Optional[str]) -> bool:
    """
    Checks whether any product still references ``image``.
    """
    if not image:
        return False
    products = get_products_collection()
    return await products.count_documents({"image": image}, limit=1) > 0


async def get_products_by_ids(product_ids: Iterable) -> Dict[ObjectId, Dict[str, Any]]:
    """
    Loads several products in one query.

    Returns:
        Mapping of ObjectId to product document; unknown ids are absent
    """
    oids = list({oid for oid in (parse_object_id(p) for p in product_ids) if oid is not None})
    if not oids:
        return {}

    products = get_products_collection()
    docs = await products.find({"_id": {"$in": oids}}).to_list(length=None)
    return {doc["_id"]: doc for doc in docs}


async def create_product(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Inserts a new product.

    Args:
        fields: Output of ``build_product_fields``

    Returns:
        Stored product document
    """
    now = utcnow()
    product = {**fields, "createdAt": now, "updatedAt": now}

    products = get_products_collection()
    result = await products.insert_one(product)
    product["_id"] = result.inserted_id

    logger.info(
        f"Product created: {product.get('name')}",
        extra={"product_id": str(result.inserted_id)}
    )
    return product


async def update_product(product_id, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Applies a partial update and returns the updated product.

    Raises:
        BadRequestError: If the id is malformed
        ResourceNotFoundError: If no product has the id
    """
    oid = _require_object_id(product_id)
    products = get_products_collection()

    updated = await products.find_one_and_update(
        {"_id": oid},
        {"$set": {**fields, "updatedAt": utcnow()}},
        return_document=True
    )
    if not updated:
        raise ResourceNotFoundError(MSG_PRODUCT_NOT_FOUND, details={"product_id": str(product_id)})

    logger.info(
        f"Product updated: {sorted(fields)}",
        extra={"product_id": str(oid)}
    )
    return updated


async def delete_product(product_id) -> Dict[str, Any]:
    """
    Removes a product.

    Carts and past orders keep their references; cart reads drop lines whose
    product no longer exists and orders hold their own snapshot.

    Returns:
        The deleted product document
    """
    oid = _require_object_id(product_id)
    products = get_products_collection()

    deleted = await products.find_one_and_delete({"_id": oid})
    if not deleted:
        raise ResourceNotFoundError(MSG_PRODUCT_NOT_FOUND, details={"product_id": str(product_id)})

    logger.info(f"Product deleted: {deleted.get('name')}", extra={"product_id": str(oid)})
    return deleted


async def replace_catalog(products_data: List[Dict[str, Any]]) -> int:
    """
    Deletes every product and inserts ``products_data`` (seed script).

    Returns:
        Number of products inserted
    """
    products = get_products_collection()
    await products.delete_many({})

    now = utcnow()
    docs = [{**p, "createdAt": now, "updatedAt": now} for p in products_data]
    if not docs:
        return 0

    result = await products.insert_many(docs)
    return len(result.inserted_ids)
