"""Products API router."""
from typing import List

from fastapi import APIRouter, Depends, Path
from opentelemetry import trace
from sqlalchemy.orm import Session

from shop_api.database import get_db
from shop_api.dependencies import get_product_service
from shop_api.monitoring import product_views_counter
from shop_api.schemas import MAX_INT, MIN_INT, ProductResponse
from shop_api.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=List[ProductResponse])
def get_products(
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """List the whole catalog."""
    products = product_service.list_products(db)

    span = trace.get_current_span()
    span.set_attribute("product.count", len(products))
    product_views_counter.add(1, {"view": "catalog"})

    return products


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int = Path(..., description="Product ID", ge=MIN_INT, le=MAX_INT),
    db: Session = Depends(get_db),
    product_service: ProductService = Depends(get_product_service)
):
    """Get one product; 404 if it does not exist."""
    product = product_service.get_product(db, product_id)

    span = trace.get_current_span()
    span.set_attribute("product.id", product_id)
    product_views_counter.add(1, {"view": "detail"})

    return product
