"""
Mock Storefront Services

In-memory shipping rates, discount codes and order capture for exercising
the checkout against real HTTP.
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .routes import discounts_router, orders_router, shipping_router

# Load environment variables
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "config", ".env"))

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Storefront services starting up...")
    logger.info(f"Currency: {settings.currency}, tax rate: {settings.tax_rate}")
    logger.info(f"Free shipping threshold: {settings.free_shipping_threshold if settings.free_shipping_enabled else 'disabled'}")
    yield
    logger.info("Storefront services shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Greenbox Storefront Services",
    description="Mock shipping, discount and order services for the checkout",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(shipping_router)
app.include_router(discounts_router)
app.include_router(orders_router)


@app.get("/")
async def home():
    """Service index"""
    return {
        "message": "Greenbox Storefront Services API",
        "docs": "/docs",
        "endpoints": {
            "shipping": "/api/shipping/options",
            "discounts": "/api/discounts/validate",
            "orders": "/api/orders",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "storefront-services"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "greenbox.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
