"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Range of the integer columns ids and quantities are stored in
MIN_INT = -2**31
MAX_INT = 2**31 - 1


class ProductResponse(BaseModel):
    """Schema for product response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    stock: int


class RegisterRequest(BaseModel):
    """Schema for registration request. Missing fields are reported by the service."""
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Schema for login request."""
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    """Public view of a user."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str


class MeResponse(BaseModel):
    user: Optional[UserResponse] = None


class LoginResponse(BaseModel):
    message: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


class CartItemSchema(BaseModel):
    """A cart entry as stored in the session."""
    productId: int
    qty: int


class AddToCartRequest(BaseModel):
    """Schema for add to cart request; qty defaults to one unit."""
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[int] = Field(None, alias="productId", ge=MIN_INT, le=MAX_INT)
    qty: Optional[int] = Field(None, ge=MIN_INT, le=MAX_INT)


class UpdateCartRequest(BaseModel):
    """Schema for cart quantity update; qty 0 removes the entry."""
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[int] = Field(None, alias="productId", ge=MIN_INT, le=MAX_INT)
    qty: int = Field(..., ge=MIN_INT, le=MAX_INT)


class CartResponse(BaseModel):
    message: str
    cart: List[CartItemSchema]


class CartDetailItem(BaseModel):
    productId: int
    name: Optional[str] = None
    price: Optional[float] = None
    qty: int
    lineTotal: float


class CartDetailResponse(BaseModel):
    """Schema for the priced cart view."""
    items: List[CartDetailItem]
    total: float


class CheckoutResponse(BaseModel):
    """Schema for checkout response."""
    message: str
    orderId: int
    total: float


class OrderResponse(BaseModel):
    """Schema for order response."""
    id: int
    user_id: int
    total: float
    created_at: Optional[datetime] = None


class OrderItemResponse(BaseModel):
    product_id: int
    name: Optional[str] = None
    qty: int
    price: float
    lineTotal: float


class OrderDetailResponse(BaseModel):
    """Schema for a single order with its items."""
    order: OrderResponse
    items: List[OrderItemResponse]
