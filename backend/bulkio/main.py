"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bulkio.api.v1 import api_router
from bulkio.core.config import get_settings
from bulkio.database import async_session_factory, init_db
from bulkio.schemas.common import HealthResponse, RootResponse
from bulkio.services.exceptions import (
    ConflictError,
    InvalidStateTransitionError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from bulkio.services.job_runner import get_job_runner
from bulkio.services.job_service import recover_interrupted_jobs

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    await init_db()
    async with async_session_factory() as session:
        await recover_interrupted_jobs(session)
    logger.info(f"{settings.app_name} {settings.app_version} started")
    yield
    # Shutdown: let running jobs reach a terminal state
    runner = get_job_runner()
    if runner.active_count:
        logger.info(f"Waiting for {runner.active_count} running jobs")
    await runner.drain()


app = FastAPI(
    title=settings.app_name,
    description="Bulk import and export of users, articles and comments as CSV or NDJSON",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# CORS middleware - configurable via settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers for service layer exceptions
@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError):
    """Convert NotFoundError to 404 response."""
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(ConflictError)
async def conflict_exception_handler(request: Request, exc: ConflictError):
    """Convert ConflictError to 409 response."""
    return JSONResponse(status_code=409, content={"detail": exc.message})


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Convert ValidationError to 400 response."""
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed query parameters and bodies as 400."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    """Convert generic ServiceError to 500 response."""
    logger.error(f"Unhandled service error on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(InvalidStateTransitionError)
async def invalid_state_exception_handler(request: Request, exc: InvalidStateTransitionError):
    """Convert InvalidStateTransitionError to 409 response."""
    return JSONResponse(status_code=409, content={"detail": exc.message})


@app.get("/health", tags=["Health"], response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", app=settings.app_name, version=settings.app_version)


@app.get("/", tags=["Root"], response_model=RootResponse)
async def root():
    """Root endpoint with API information."""
    return RootResponse(
        app=settings.app_name,
        version=settings.app_version,
        docs="/docs",
        api=settings.api_v1_prefix,
    )


# Include API v1 router
app.include_router(api_router, prefix=settings.api_v1_prefix)
