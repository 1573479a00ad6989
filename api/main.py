"""Sanctum DMS FastAPI Application.

The schema engine runs in the lifespan handler, before the app accepts a
single request. If the store cannot be migrated or validated the error
propagates out of startup and the server does not come up.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from api.config import get_settings
from api.models.schemas import HealthStatus
from api.routers import admin
from api.services.database import DatabaseService, get_db_service
from config import config
from config.logging_config import setup_logging, get_logger

settings = get_settings()
logger = get_logger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.app.log_level, log_file=config.app.log_file)
    service = DatabaseService(get_settings().database_path)
    try:
        report = service.startup()
    except Exception:
        service.close()
        logger.critical("Aborting startup: database schema is not usable")
        raise

    logger.info(f"Database ready: {report.summary()}")
    app.state.db_service = service
    try:
        yield
    finally:
        app.state.db_service = None
        service.close()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    description="Dealer, vehicle and sales record keeping API",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "api_version": settings.api_version,
        "docs": "/docs",
        "endpoints": {
            "admin": "/api/admin",
            "health": "/health",
        },
    }


@app.get("/health", response_model=HealthStatus)
async def health_check(service: DatabaseService = Depends(get_db_service)):
    """Health check endpoint."""
    try:
        version = service.engine.current_version()
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e),
        }
    return {
        "status": "healthy",
        "database": "connected",
        "schema_version": version,
    }
