"""Order management service."""
import logging
from decimal import Decimal
from typing import Any, Dict, List

from opentelemetry import trace
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shop_api.database import unit_of_work
from shop_api.errors import InvalidState, NotFound, PersistenceError, ValidationError
from shop_api.models import Order, OrderItem, Product
from shop_api.monitoring import checkout_amount_histogram, checkout_counter
from shop_api.services.cart_service import CartService, round_money
from shop_api.services.product_service import ProductService

logger = logging.getLogger(__name__)


class OrderService:
    """Service for placing and reading orders."""

    def __init__(self, cart_service: CartService, product_service: ProductService = None):
        """
        Initialize order service.

        Args:
            cart_service: Cart of the session placing orders
            product_service: Catalog accessor
        """
        self.cart_service = cart_service
        self.product_service = product_service or ProductService()
        self.tracer = trace.get_tracer(__name__)

    def place_order(self, db: Session, user_id: int) -> Dict[str, Any]:
        """
        Turn the session cart into an order, all or nothing.

        The product rows are read with row locks as the first statement of
        the transaction, validated, and then the order, its items and the
        stock decrements are written before a single commit. Every stock
        decrement is additionally guarded by ``stock >= qty`` so stock can
        never go negative, even on stores that ignore ``FOR UPDATE``.

        Args:
            db: Database session
            user_id: Authenticated owner of the order

        Returns:
            ``{"order_id": int, "total": float}``

        Raises:
            InvalidState: If the cart is empty
            ValidationError: If a product is missing or stock is insufficient
            PersistenceError: If writing the order failed and was rolled back
        """
        cart = self.cart_service.get()
        if not cart:
            raise InvalidState("Cart is empty")

        span = trace.get_current_span()
        span.set_attribute("user.id", user_id)
        span.set_attribute("cart.size", len(cart))

        try:
            with unit_of_work(db):
                products = self.product_service.lock_products(
                    db, [item["productId"] for item in cart]
                )
                total = self._validate(cart, products)
                order_id = self._write_order(db, user_id, cart, products, total)
        except (InvalidState, ValidationError):
            checkout_counter.add(1, {"status": "rejected"})
            raise
        except SQLAlchemyError as e:
            checkout_counter.add(1, {"status": "failed"})
            logger.error("Failed to create order", extra={
                "user_id": user_id,
                "error": str(e)
            })
            raise PersistenceError("Failed to create order") from e

        self.cart_service.clear()

        rounded_total = float(round_money(total))
        checkout_counter.add(1, {"status": "completed"})
        checkout_amount_histogram.record(rounded_total)
        logger.info("Order placed", extra={
            "user_id": user_id,
            "order_id": order_id,
            "amount": rounded_total,
            "item_count": len(cart)
        })

        return {"order_id": order_id, "total": rounded_total}

    def _validate(self, cart: List[Dict[str, int]], products: Dict[int, Product]) -> Decimal:
        """Check availability against the locked snapshot and compute the total."""
        requested = {item["productId"] for item in cart}
        if len(products) != len(requested):
            raise ValidationError("One or more products not found")

        total = Decimal("0")
        for item in cart:
            product = products[item["productId"]]
            if item["qty"] > product.stock:
                raise ValidationError(f"Insufficient stock for product {item['productId']}")
            total += product.price * item["qty"]
        return total

    def _write_order(
        self,
        db: Session,
        user_id: int,
        cart: List[Dict[str, int]],
        products: Dict[int, Product],
        total: Decimal
    ) -> int:
        with self.tracer.start_as_current_span("db.transaction.create_order") as db_span:
            order = Order(user_id=user_id, total=round_money(total))
            db.add(order)
            db.flush()
            db_span.set_attribute("order.id", order.id)

            db.add_all([
                OrderItem(
                    order_id=order.id,
                    product_id=item["productId"],
                    qty=item["qty"],
                    price=products[item["productId"]].price
                )
                for item in cart
            ])
            db.flush()

            for item in cart:
                if not self.product_service.decrement_stock(db, item["productId"], item["qty"]):
                    raise ValidationError(f"Insufficient stock for product {item['productId']}")

            return order.id

    def get_user_orders(self, db: Session, user_id: int) -> List[Dict[str, Any]]:
        """
        Get all orders for a user, newest first.

        Args:
            db: Database session
            user_id: User identifier

        Returns:
            List of orders
        """
        orders = (
            db.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.id.desc())
            .all()
        )
        return [serialize_order(order) for order in orders]

    def get_user_order(self, db: Session, user_id: int, order_id: int) -> Dict[str, Any]:
        """
        Get one of the user's orders with its line items.

        Raises:
            NotFound: If the order does not exist or belongs to someone else
        """
        order = (
            db.query(Order)
            .filter(Order.id == order_id, Order.user_id == user_id)
            .first()
        )
        if order is None:
            raise NotFound("Order not found")

        rows = (
            db.query(OrderItem, Product.name)
            .outerjoin(Product, Product.id == OrderItem.product_id)
            .filter(OrderItem.order_id == order.id)
            .order_by(OrderItem.id)
            .all()
        )
        items = [
            {
                "product_id": item.product_id,
                "name": name,
                "qty": item.qty,
                "price": float(item.price),
                "lineTotal": float(round_money(item.price * item.qty)),
            }
            for item, name in rows
        ]
        return {"order": serialize_order(order), "items": items}


def serialize_order(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "total": float(order.total),
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }
