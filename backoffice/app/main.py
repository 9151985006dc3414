"""
FastAPI Application Entry Point.

This is the main application file for the Back-Office Ledger Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from backoffice.app.core.config import settings
from backoffice.app.core.observability import ObservabilityMiddleware, configure_logging
from backoffice.app.api.v1.router import router as api_v1_router
from backoffice.app.db.session import engine, Base
from backoffice.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from backoffice.app.models.customer import Customer
from backoffice.app.models.run_receipt import RunReceipt, RunReceiptLine
from backoffice.app.models.order import Order, OrderItem
from backoffice.app.models.pricing_rule import CustomerItemPrice
from backoffice.app.models.ledger_entry import CustomerAr
from backoffice.app.models.settlement import Payment

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates missing tables on startup (local and demo databases; production
    schemas are owned by the writing services).
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Customer ledger and settlement reconciliation for the back office",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """Welcome message and API documentation links."""
    return {
        "message": "Welcome to the Back-Office Ledger API",
        "docs": "/docs",
        "health": "/health",
    }
