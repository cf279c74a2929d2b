"""Product catalog access."""
import logging
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from shop_api.errors import NotFound
from shop_api.models import Product

logger = logging.getLogger(__name__)


class ProductService:
    """Read-only accessor over the products table."""

    def list_products(self, db: Session) -> List[Product]:
        return db.query(Product).order_by(Product.id).all()

    def get_product(self, db: Session, product_id: int) -> Product:
        """
        Get a single product.

        Raises:
            NotFound: If the product does not exist
        """
        product = db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise NotFound("Product not found")
        return product

    def get_products(self, db: Session, product_ids: Iterable[int]) -> Dict[int, Product]:
        """Batch fetch products by id; missing ids are simply absent."""
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = db.query(Product).filter(Product.id.in_(ids)).all()
        return {product.id: product for product in rows}

    def lock_products(self, db: Session, product_ids: Iterable[int]) -> Dict[int, Product]:
        """
        Batch fetch products with row locks held until the transaction ends.

        Rows are locked in id order so concurrent checkouts acquire locks
        in the same sequence. Stores without ``FOR UPDATE`` support (SQLite)
        get a plain read.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = (
            db.query(Product)
            .filter(Product.id.in_(ids))
            .order_by(Product.id)
            .populate_existing()
            .with_for_update()
            .all()
        )
        return {product.id: product for product in rows}

    def decrement_stock(self, db: Session, product_id: int, qty: int) -> bool:
        """
        Take ``qty`` units out of stock if at least that many remain.

        Returns:
            False if the guard failed and no row was changed
        """
        updated = (
            db.query(Product)
            .filter(Product.id == product_id, Product.stock >= qty)
            .update({Product.stock: Product.stock - qty}, synchronize_session=False)
        )
        return updated == 1
