from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from buddy_schedule.config import settings
from buddy_schedule.database import engine, Base
from buddy_schedule.api.routes import api_router
from buddy_schedule.errors import ServiceError
import buddy_schedule.models  # noqa: F401  registers the tables on Base.metadata
import logging

# Logging setup
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

# FastAPI application
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins if isinstance(settings.cors_origins, list) else [settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(api_router)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Map domain errors to their HTTP status"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Store and programming failures stay opaque to the client"""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "internal error", "error_code": "INTERNAL_ERROR"},
    )


@app.on_event("startup")
async def startup_event():
    """Application startup"""
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"Debug mode: {settings.debug}")
    logger.info(f"Database: {settings.database_url}")
    cors_origins_list = settings.cors_origins if isinstance(settings.cors_origins, list) else [settings.cors_origins]
    logger.info(f"Allowed CORS origins: {cors_origins_list}")

    # Create missing tables; managed deployments run the Alembic migrations instead
    Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown"""
    logger.info("Shutting down")


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Buddy Schedule API",
        "version": "1.0.0",
        "docs": "/docs"
    }
