"""Main FastAPI application"""
from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
import logging

from matrimony.core.config import settings
from matrimony.core.origins import (
    AllowedOriginsCache,
    CachedOriginsCORSMiddleware,
    origins_from_settings,
)
from matrimony.utils.logger import setup_file_logging
from matrimony.api.v1.api import api_router
from matrimony.db.init_db import init_db
from matrimony.errors.handlers import (
    validation_exception_handler,
    sqlalchemy_exception_handler,
    general_exception_handler
)

setup_file_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Account registration, OTP login and password management",
    version=settings.PROJECT_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

allowed_origins = AllowedOriginsCache(origins_from_settings, ttl=settings.ORIGINS_CACHE_TTL_SECONDS)
app.state.allowed_origins = allowed_origins

app.add_middleware(
    CachedOriginsCORSMiddleware,
    origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key"],
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["Health"])
async def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
    }


@app.on_event("startup")
async def startup_event():
    """Initialize database and log application startup"""
    try:
        init_db()
        logger.warning(f"{settings.PROJECT_NAME} STARTED - Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        logger.warning(f"{settings.PROJECT_NAME} STARTED - Database initialization failed, but API is running")


@app.on_event("shutdown")
async def shutdown_event():
    """Log application shutdown"""
    logger.warning(f"{settings.PROJECT_NAME} SHUTDOWN")
