"""Shared fixtures: SQLite database, seeded catalog and an API client."""
import os

# Must be set before shop_api modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_BACKEND"] = "memory"
os.environ["OTEL_ENABLED"] = "false"
os.environ["SEED_PRODUCTS"] = "false"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shop_api.database import get_db
from shop_api.main import app
from shop_api.models import Base, Product, User
from shop_api.security import hash_password


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def products(db):
    """Three products keyed by name: plenty, a few, and a single unit."""
    rows = {
        "widget": Product(name="Widget", price=Decimal("9.99"), stock=10),
        "gadget": Product(name="Gadget", price=Decimal("19.95"), stock=5),
        "last_one": Product(name="Last One", price=Decimal("5.00"), stock=1),
    }
    db.add_all(rows.values())
    db.commit()
    return {key: product.id for key, product in rows.items()}


@pytest.fixture
def user(db):
    account = User(username="alice", email="alice@example.com", password=hash_password("secret"))
    db.add(account)
    db.commit()
    return account.id


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # Not used as a context manager so the lifespan (init_db against the
    # configured engine) does not run
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def stock_of(db):
    """Re-read a product's stock from the database."""
    def read(product_id):
        db.expire_all()
        return db.get(Product, product_id).stock
    return read
