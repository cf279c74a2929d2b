"""Session cart management service."""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from opentelemetry import trace
from sqlalchemy.orm import Session

from shop_api.errors import NotFound, ValidationError
from shop_api.monitoring import cart_additions_counter
from shop_api.services.product_service import ProductService

logger = logging.getLogger(__name__)

CART_KEY = "cart"
CENTS = Decimal("0.01")


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def _require_product_id(product_id: Any) -> int:
    if isinstance(product_id, bool) or not isinstance(product_id, int) or product_id <= 0:
        raise ValidationError("Invalid payload")
    return product_id


class CartService:
    """
    Cart held in the caller's server-side session.

    Entries are ``{"productId": int, "qty": int}`` dicts, unique by product
    and kept in insertion order. Products are not checked here; existence
    and stock are validated when the cart is priced or checked out.
    """

    def __init__(self, session: Dict[str, Any], product_service: Optional[ProductService] = None):
        """
        Initialize cart service.

        Args:
            session: Session mapping the cart is stored in
            product_service: Catalog accessor used for the priced view
        """
        self.session = session
        self.product_service = product_service or ProductService()

    def get(self) -> List[Dict[str, int]]:
        return [dict(item) for item in self.session.get(CART_KEY) or []]

    def _store(self, items: List[Dict[str, int]]) -> List[Dict[str, int]]:
        # Reassign so the session registers the change
        self.session[CART_KEY] = items
        return self.get()

    def add(self, product_id: int, qty: Optional[int] = None) -> List[Dict[str, int]]:
        """
        Add ``qty`` units of a product, merging with an existing entry.

        A missing or zero quantity means one unit.

        Raises:
            ValidationError: If the product id or quantity is invalid
        """
        product_id = _require_product_id(product_id)
        qty = qty or 1
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise ValidationError("Invalid payload")

        items = self.get()
        for item in items:
            if item["productId"] == product_id:
                item["qty"] += qty
                break
        else:
            items.append({"productId": product_id, "qty": qty})

        cart_additions_counter.add(1, {"product_id": str(product_id)})
        logger.info("Added product to cart", extra={
            "product_id": product_id,
            "quantity": qty
        })
        return self._store(items)

    def update(self, product_id: int, qty: int) -> List[Dict[str, int]]:
        """
        Set the quantity of an entry; zero removes it.

        Raises:
            ValidationError: If the product id or quantity is invalid
            NotFound: If the product is not in the cart
        """
        product_id = _require_product_id(product_id)
        if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
            raise ValidationError("Invalid payload")

        items = self.get()
        index = next(
            (i for i, item in enumerate(items) if item["productId"] == product_id),
            None
        )
        if index is None:
            raise NotFound("Item not in cart")

        if qty == 0:
            del items[index]
        else:
            items[index]["qty"] = qty
        return self._store(items)

    def clear(self) -> None:
        self.session[CART_KEY] = []

    def get_detail(self, db: Session) -> Dict[str, Any]:
        """
        Price the cart against live product data.

        Entries whose product no longer exists are reported with no name
        or price and contribute nothing to the total.

        Args:
            db: Database session

        Returns:
            ``{"items": [...], "total": float}``
        """
        items = self.get()
        if not items:
            return {"items": [], "total": 0}

        span = trace.get_current_span()
        span.set_attribute("cart.size", len(items))

        products = self.product_service.get_products(db, [item["productId"] for item in items])

        total = Decimal("0")
        detail = []
        for item in items:
            product = products.get(item["productId"])
            line_total = product.price * item["qty"] if product else Decimal("0")
            total += line_total
            detail.append({
                "productId": item["productId"],
                "name": product.name if product else None,
                "price": float(product.price) if product else None,
                "qty": item["qty"],
                "lineTotal": float(line_total),
            })

        return {"items": detail, "total": float(round_money(total))}
