import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.api import api_router
from app.core.config import settings
from app.core.exceptions import (
    StockControlError,
    ValidationError,
    PermissionDeniedError,
    InsufficientStockError,
    NotFoundError,
    StoreError,
)
from app.database.session import SessionLocal, create_db_and_tables
from app.services.stock.notifications import notifier

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    InsufficientStockError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    notifier.bind(SessionLocal)
    yield
    notifier.unbind(SessionLocal)


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="SchoolStock: school supplies inventory with entries, exits, alerts and reports",
    version="1.0.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs",
    lifespan=lifespan,
)

# Set up CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.exception_handler(StockControlError)
async def stock_control_error_handler(request: Request, exc: StockControlError):
    """Turn domain errors into a message the front end shows in its dialog."""
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, StoreError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({exc.code}): {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code, "message": exc.message},
    )

@app.get("/")
async def root():
    """Root endpoint that returns a welcome message and API status."""
    return {
        "message": "Welcome to SchoolStock API",
        "status": "running",
        "version": "1.0.0",
        "docs_url": "/docs"
    }

@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring and load balancers."""
    return {
        "status": "healthy",
        "api": "running",
    }
