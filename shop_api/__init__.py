"""Shop API: catalog, session cart and order placement service."""

__version__ = "1.0.0"
