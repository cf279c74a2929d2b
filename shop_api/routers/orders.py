"""Orders API router."""
from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.orm import Session

from shop_api.auth import require_user
from shop_api.database import get_db
from shop_api.dependencies import get_order_service
from shop_api.schemas import MAX_INT, MIN_INT, CheckoutResponse, OrderDetailResponse, OrderResponse
from shop_api.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
def checkout(
    db: Session = Depends(get_db),
    user_id: int = Depends(require_user),
    order_service: OrderService = Depends(get_order_service)
):
    """Place an order from the session cart - requires authentication."""
    result = order_service.place_order(db, user_id)
    return {
        "message": "Order placed",
        "orderId": result["order_id"],
        "total": result["total"]
    }


@router.get("", response_model=List[OrderResponse])
def get_orders(
    db: Session = Depends(get_db),
    user_id: int = Depends(require_user),
    order_service: OrderService = Depends(get_order_service)
):
    """Get user's orders - requires authentication."""
    return order_service.get_user_orders(db, user_id)


@router.get("/{order_id}", response_model=OrderDetailResponse)
def get_order(
    order_id: int = Path(..., description="Order ID", ge=MIN_INT, le=MAX_INT),
    db: Session = Depends(get_db),
    user_id: int = Depends(require_user),
    order_service: OrderService = Depends(get_order_service)
):
    """Get one of the user's orders with its items - requires authentication."""
    return order_service.get_user_order(db, user_id, order_id)
