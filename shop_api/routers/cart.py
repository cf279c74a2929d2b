"""Cart API router."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shop_api.database import get_db
from shop_api.dependencies import get_cart_service
from shop_api.schemas import (
    AddToCartRequest,
    CartDetailResponse,
    CartItemSchema,
    CartResponse,
    MessageResponse,
    UpdateCartRequest,
)
from shop_api.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=List[CartItemSchema])
async def get_cart(cart_service: CartService = Depends(get_cart_service)):
    """Raw cart entries of the current session."""
    return cart_service.get()


@router.post("/add", response_model=CartResponse)
async def add_to_cart(
    request: AddToCartRequest,
    cart_service: CartService = Depends(get_cart_service)
):
    """Add an item to the cart, merging quantities for the same product."""
    cart = cart_service.add(request.product_id, request.qty)
    return {"message": "Added to cart", "cart": cart}


@router.post("/update", response_model=CartResponse)
async def update_cart(
    request: UpdateCartRequest,
    cart_service: CartService = Depends(get_cart_service)
):
    """Set the quantity of a cart entry; 0 removes it."""
    cart = cart_service.update(request.product_id, request.qty)
    return {"message": "Cart updated", "cart": cart}


@router.delete("/clear", response_model=MessageResponse)
async def clear_cart(cart_service: CartService = Depends(get_cart_service)):
    cart_service.clear()
    return {"message": "Cart cleared"}


@router.get("/detail", response_model=CartDetailResponse)
def get_cart_detail(
    db: Session = Depends(get_db),
    cart_service: CartService = Depends(get_cart_service)
):
    """Cart priced against current product data."""
    return cart_service.get_detail(db)
