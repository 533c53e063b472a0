"""
FastAPI application entry point
Main application factory and configuration
Reference: https://fastapi.tiangolo.com/tutorial/bigger-applications/
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from retailops.api.v1.api import api_router
from retailops.core.config import settings
from retailops.core.database import engine
from retailops.core.exceptions import DomainError, EmployeeOutOfScopeError
from retailops.services.notifications import drain_deliveries

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events
    Validates database connection on startup
    Reference: https://fastapi.tiangolo.com/advanced/events/
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
    except Exception as e:
        # Keep serving so /health answers; requests needing the database will fail
        logger.error(f"Database connection failed: {e}")

    yield

    await drain_deliveries()
    await engine.dispose()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="Multi-boutique retail operations: schedules, coverage, targets, sales ledger and leaves",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Map typed service errors to their HTTP status and stable error code
    Reference: https://fastapi.tiangolo.com/tutorial/handling-errors/#install-custom-exception-handlers
    """
    if isinstance(exc, EmployeeOutOfScopeError):
        # Offending ids go to the log only; the client sees a plain 403
        logger.warning(f"Cross-boutique access blocked on {request.url.path}: {exc.invalid_emp_ids}")
    elif exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


app.include_router(api_router)


@app.get("/")
async def root():
    """
    Root endpoint
    Provides basic information about the API
    """
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "version": settings.VERSION,
        "docs": "/docs",
    }
