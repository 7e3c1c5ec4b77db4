"""
app/api/cart.py

Purpose: Cart endpoints (authenticated)

- View cart with current prices
- Add a line / replace the whole cart / remove a line / clear
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.schemas.cart import CartItemRequest, CartReplaceRequest
from app.schemas.response import MessageResponse
from app.services import cart_service
from utils.constants import MSG_CART_CLEARED

router = APIRouter()


@router.get("")
async def get_cart(user=Depends(get_current_user)):
    return await cart_service.get_cart(user["_id"])


@router.post("", status_code=201)
async def add_to_cart(body: CartItemRequest, user=Depends(get_current_user)):
    return await cart_service.add_item(user["_id"], body.productId, body.quantity)


@router.put("")
async def replace_cart(body: CartReplaceRequest, user=Depends(get_current_user)):
    """
    Replace the cart with the browser's copy in one request.
    """
    items = [(item.productId, item.quantity) for item in body.items]
    return await cart_service.replace_items(user["_id"], items)


@router.delete("", response_model=MessageResponse)
async def clear_cart(user=Depends(get_current_user)):
    await cart_service.clear_cart(user["_id"])
    return {"message": MSG_CART_CLEARED}


@router.delete("/{product_id}")
async def remove_from_cart(product_id: str, user=Depends(get_current_user)):
    return await cart_service.remove_item(user["_id"], product_id)
