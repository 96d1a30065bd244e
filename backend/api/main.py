"""
FieldSales API — FastAPI Application Entry Point
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.requests import Request

from api.responses import ErrorEnvelope
from core.config import get_settings
from core.errors import AppError

settings = get_settings()
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("FieldSales API starting up", version=settings.app_version)
    yield
    logger.info("FieldSales API shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Sales-force automation: orders, promotions and field inventory",
    lifespan=lifespan,
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("api.app_error", path=request.url.path, code=exc.code, message=exc.message)
    else:
        logger.info("api.client_error", path=request.url.path, code=exc.code, message=exc.message)
    body = ErrorEnvelope(message=exc.message, error=exc.to_dict())
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("api.database_error", path=request.url.path, error=str(exc), exc_info=exc)
    body = ErrorEnvelope(message="Database error", error={"code": "internal_error"})
    return JSONResponse(status_code=500, content=body.model_dump())


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and register routers
from api.v1.routers import inventory, orders, promotions

app.include_router(orders.router)
app.include_router(promotions.router)
app.include_router(inventory.router)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers."""
    return {"status": "healthy", "version": settings.app_version}
