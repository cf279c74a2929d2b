"""Dependency injection for sessions and services."""
from fastapi import Depends, Request

from shop_api.sessions import Session
from shop_api.services.account_service import AccountService
from shop_api.services.cart_service import CartService
from shop_api.services.order_service import OrderService
from shop_api.services.product_service import ProductService


def get_session(request: Request) -> Session:
    """Get the server-side session loaded by SessionMiddleware."""
    return request.state.session


def get_product_service() -> ProductService:
    return ProductService()


def get_account_service() -> AccountService:
    return AccountService()


def get_cart_service(
    session: Session = Depends(get_session),
    product_service: ProductService = Depends(get_product_service)
) -> CartService:
    """Get cart service bound to the caller's session."""
    return CartService(session, product_service)


def get_order_service(
    cart_service: CartService = Depends(get_cart_service),
    product_service: ProductService = Depends(get_product_service)
) -> OrderService:
    """Get order service instance."""
    return OrderService(cart_service, product_service)
