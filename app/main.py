from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

# Import database components
from app.database.database import get_engine, Base

from app.common.exceptions import LedgerError, NotFoundError, BusinessRejection

# Import routers
from app.modules.customers.router import router as customers_router
from app.modules.inventory.router import router as products_router
from app.modules.invoices.router import router as invoices_router
from app.modules.sales.router import router as sales_router

# Import models for table creation
import app.modules.customers.models
import app.modules.inventory.models
import app.modules.invoices.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Credit & Stock Ledger API",
    description="Customer credit control, inventory and invoicing ledger built with FastAPI and SQLAlchemy",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_400_BAD_REQUEST

    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, BusinessRejection) and exc.detail:
        content["rejection"] = exc.detail
    return JSONResponse(status_code=status_code, content=content)


# Include routers
app.include_router(customers_router)
app.include_router(products_router)
app.include_router(invoices_router)
app.include_router(sales_router)

# Create database tables (only for development - use migrate.py otherwise)
if settings.ENVIRONMENT == "development" and settings.STORE_BACKEND == "sql":
    Base.metadata.create_all(bind=get_engine())

@app.get("/")
async def read_root():
    return {
        "message": "Credit & Stock Ledger API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "store_backend": settings.STORE_BACKEND
    }

@app.on_event("startup")
async def startup_event():
    logger.info("Ledger API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Store backend: {settings.STORE_BACKEND}, notifier: {settings.NOTIFIER_BACKEND}")
    logger.info(f"Debug mode: {settings.DEBUG}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Ledger API shutting down...")
