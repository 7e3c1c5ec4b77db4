"""
app/api/products.py

Purpose: Catalog endpoints

- Public listing and product detail
- Admin create / update / delete with multipart forms
  (image as an uploaded file or as a URL string)
"""

from typing import Optional, Dict, Any, Tuple

from fastapi import APIRouter, Depends, Query, Request
from starlette.datastructures import UploadFile

from app.api.deps import require_admin
from app.core.exceptions import BadRequestError
from app.core.logging import get_logger
from app.schemas.response import MessageResponse
from app.services import product_service, image_service
from utils.constants import MSG_PRODUCT_REMOVED
from utils.document_utils import serialize_document

logger = get_logger(__name__)
router = APIRouter()

PRODUCT_FORM_FIELDS = ("name", "description", "price", "category", "inStock")


async def _read_product_form(request: Request) -> Tuple[Dict[str, Any], Optional[str]]:
    """
    Reads product fields from a multipart/urlencoded form or a JSON body.

    An uploaded ``image`` file is stored and replaced by its public path;
    a string ``image`` is used as-is. Absent fields are omitted.

    Returns:
        (values, path of the image stored by this request or None)
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            data = await request.json()
        except ValueError:
            raise BadRequestError("Request body is not valid JSON")
        if not isinstance(data, dict):
            raise BadRequestError("Request body must be a JSON object")
    else:
        form = await request.form()
        data = {key: form.get(key) for key in form.keys()}

    values: Dict[str, Any] = {k: data[k] for k in PRODUCT_FORM_FIELDS if k in data}
    saved_image = None

    image = data.get("image")
    if isinstance(image, UploadFile):
        if image.filename:
            saved_image = await image_service.save_image(image)
            values["image"] = saved_image
    elif isinstance(image, str) and image.strip():
        values["image"] = image.strip()

    return values, saved_image


def _product_fields(values: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    return product_service.build_product_fields(
        name=values.get("name"),
        description=values.get("description"),
        price=values.get("price"),
        category=values.get("category"),
        in_stock=values.get("inStock"),
        image=values.get("image"),
        partial=partial,
    )


async def _release_image(image: Optional[str]):
    """Deletes an uploaded image once no product references it."""
    if not image_service.is_uploaded_image(image):
        return
    if await product_service.image_in_use(image):
        logger.info(f"Keeping image {image}, still used by another product")
        return
    image_service.delete_image(image)


@router.get("")
async def list_products(category: Optional[str] = Query(None, description="Exact category filter")):
    products = await product_service.list_products(category)
    return [serialize_document(p) for p in products]


@router.get("/{product_id}")
async def get_product(product_id: str):
    product = await product_service.get_product(product_id)
    return serialize_document(product)


@router.post("", status_code=201)
async def create_product(request: Request, admin=Depends(require_admin)):
    """Add a product (admin)."""
    values, saved_image = await _read_product_form(request)
    try:
        product = await product_service.create_product(_product_fields(values))
    except Exception:
        # Only the file stored by this request is ours to remove
        image_service.delete_image(saved_image)
        raise

    return serialize_document(product)


@router.put("/{product_id}")
async def update_product(product_id: str, request: Request, admin=Depends(require_admin)):
    """Update the supplied fields of a product (admin)."""
    previous = await product_service.get_product(product_id)
    values, saved_image = await _read_product_form(request)
    try:
        fields = _product_fields(values, partial=True)
        product = await product_service.update_product(product_id, fields)
    except Exception:
        image_service.delete_image(saved_image)
        raise

    if "image" in fields and fields["image"] != previous.get("image"):
        await _release_image(previous.get("image"))

    return serialize_document(product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(product_id: str, admin=Depends(require_admin)):
    """Remove a product (admin)."""
    deleted = await product_service.delete_product(product_id)
    await _release_image(deleted.get("image"))
    return {"message": MSG_PRODUCT_REMOVED}
