"""
FastAPI Main Application
Household budget service: allocation, spend and investment rollups
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator
from sqlalchemy import text

from app.config import settings
from app.core.logging import setup_logging
from app.infrastructure.db.database import init_db, close_db
from app.api.dependencies import load_config_engine
from app.api.errors import register_exception_handlers

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    """
    logger.info("=" * 60)
    logger.info("Starting Household Budget service")
    logger.info("=" * 60)

    # 1. Database
    logger.info("Step 1/2: Initializing database...")
    if settings.STORAGE_MODE != "local":
        await init_db()
        logger.info("Database initialized")
    else:
        logger.info("Local storage mode, database skipped")

    # 2. Configuration
    logger.info("Step 2/2: Loading configuration...")
    config_engine = load_config_engine()
    app.state.config_engine = config_engine
    logger.info("Configuration loaded")
    logger.info("   Allocation tolerance: %s", config_engine.allocation_tolerance)
    logger.info("   Storage mode: %s | Auth mode: %s", settings.STORAGE_MODE, settings.AUTH_MODE)

    logger.info("API Server: http://%s:%s (docs at /docs)", settings.API_HOST, settings.API_PORT)

    yield

    logger.info("Shutting down Household Budget service...")
    await close_db()
    logger.info("Database connections closed")


# Create FastAPI app
app = FastAPI(
    title="Household Budget Engine",
    description="Salary allocation, spend tracking and investment plan rollups per profile and month",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Service and database health"""
    db_status = "disabled"
    db_error = None
    if settings.STORAGE_MODE != "local":
        try:
            from app.infrastructure.db.database import engine
            if engine is None:
                db_status = "not_initialized"
            else:
                async with engine.begin() as conn:
                    await conn.execute(text("SELECT 1"))
                db_status = "connected"
        except Exception as exc:
            db_status = "error"
            db_error = str(exc)

    return {
        "status": "healthy",
        "service": "Household Budget Engine",
        "version": "1.0.0",
        "storage_mode": settings.STORAGE_MODE,
        "services": {
            "api": "running",
            "database": db_status,
        },
        "database_error": db_error,
    }


# Import and include routers
from app.api.routes import budget, transactions  # noqa: E402

app.include_router(budget.router, prefix="/api/v1/budget", tags=["Budget"])
app.include_router(transactions.router, prefix="/api/v1/budget", tags=["Transactions"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host=settings.API_HOST, port=settings.API_PORT, reload=settings.DEBUG)
