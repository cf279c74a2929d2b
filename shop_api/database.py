"""Database connection, session management and the unit of work."""
from contextlib import contextmanager
from decimal import Decimal
from typing import Generator, Iterator
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from shop_api.config import DATABASE_URL, SEED_PRODUCTS
from shop_api.models import Base, Product

logger = logging.getLogger(__name__)

is_sqlite = DATABASE_URL.startswith("sqlite")

# SQLite doesn't support connection pooling parameters
if is_sqlite:
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_timeout=30,  # Wait max 30 seconds for a connection
    )

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Yields:
        Database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    Run a block as one all-or-nothing transaction.

    Commits when the block finishes, rolls back and re-raises on any
    exception, so no partial writes survive a failure.

    Args:
        db: Database session

    Yields:
        The same session
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


SAMPLE_PRODUCTS = [
    ("Laptop", Decimal("999.99"), 50),
    ("Smartphone", Decimal("599.99"), 100),
    ("Headphones", Decimal("99.99"), 200),
    ("Desk Chair", Decimal("199.99"), 30),
    ("Monitor", Decimal("299.99"), 75),
    ("Keyboard", Decimal("79.99"), 150),
    ("Mouse", Decimal("29.99"), 300),
    ("Webcam", Decimal("89.99"), 100),
]


def seed_products(db: Session) -> int:
    """Insert the sample catalog if the products table is empty."""
    if db.query(Product).count() > 0:
        return 0
    db.add_all([
        Product(name=name, price=price, stock=stock)
        for name, price, stock in SAMPLE_PRODUCTS
    ])
    db.commit()
    return len(SAMPLE_PRODUCTS)


def init_db() -> None:
    """Initialize database tables and seed data."""
    Base.metadata.create_all(bind=engine)

    if not SEED_PRODUCTS:
        return

    db = SessionLocal()
    try:
        seeded = seed_products(db)
        if seeded:
            logger.info("Seeded database with sample products", extra={"count": seeded})
    finally:
        db.close()
