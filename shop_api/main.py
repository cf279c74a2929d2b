"""Main application entry point."""
import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

from shop_api.config import API_VERSION, CORS_ORIGINS, STATIC_DIR
from shop_api.database import engine, init_db
from shop_api.errors import register_exception_handlers
from shop_api.logging_config import setup_logging
from shop_api.routers import auth, cart, orders, products
from shop_api.sessions import SessionMiddleware, build_session_store

# Setup structured logging
setup_logging()
logger = logging.getLogger(__name__)

session_store = build_session_store()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting application...")
    init_db()
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    engine.dispose()
    logger.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Shop API",
    version=API_VERSION,
    lifespan=lifespan
)
app.state.session_store = session_store

register_exception_handlers(app)

# Server-side sessions (identity + cart) keyed by an HTTP-only cookie
app.add_middleware(SessionMiddleware, store=session_store)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Instrument FastAPI and SQLAlchemy
FastAPIInstrumentor.instrument_app(app)
SQLAlchemyInstrumentor().instrument(engine=engine)


@app.get("/", response_class=PlainTextResponse)
async def root():
    """Liveness text."""
    return "Welcome to e-commerce API!"


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(auth.router)
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(orders.router)

# Serve the test frontend if one is present
if os.path.isdir(STATIC_DIR):
    app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=3000)
