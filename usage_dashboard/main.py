import os
import time
from collections.abc import Callable
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from usage_dashboard.api.routes import health, usage_stats, usage_sync
from usage_dashboard.core.config import (
    APP_NAME,
    APP_VERSION,
    get_app_url,
    get_owner_name,
    get_subscription_plan,
)
from usage_dashboard.core.database import async_engine
from usage_dashboard.core.logger import get_logger
from usage_dashboard.exceptions.exceptions import (
    BaseUsageTrackerException,
    InvalidApiKeyException,
    InvalidSyncPayloadException,
)
from usage_dashboard.models.base import Base

load_dotenv()

logger = get_logger(name="usage_dashboard")

# Threshold for slow request logging (in seconds)
SLOW_REQUEST_THRESHOLD_SECONDS = 10

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await async_engine.dispose()


# Request logging middleware
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()

        method = request.method
        url = request.url.path
        client = request.client.host if request.client else "unknown"

        logger.info(f"Request received: {method} {url} from {client}")

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"Request completed: {method} {url} - Status: {response.status_code} - "
            f"Took: {process_time:.4f}s"
        )
        if process_time > SLOW_REQUEST_THRESHOLD_SECONDS:
            logger.warning(f"Slow request: {method} {url} took {process_time:.2f}s")

        return response


class UsageTrackerExceptionHandler:
    """Turns tracker exceptions into ``{"error": ...}`` JSON responses."""

    @staticmethod
    def _error_response(exc: BaseUsageTrackerException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @staticmethod
    async def handle_invalid_api_key_exception(request: Request, exc: InvalidApiKeyException):
        logger.warning(f"Invalid API key for {request.url.path}")
        return UsageTrackerExceptionHandler._error_response(exc)

    @staticmethod
    async def handle_invalid_sync_payload_exception(
        request: Request, exc: InvalidSyncPayloadException
    ):
        logger.warning(f"Invalid sync payload: {exc.error}")
        return UsageTrackerExceptionHandler._error_response(exc)

    @staticmethod
    async def handle_base_exception(request: Request, exc: BaseUsageTrackerException):
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
        return UsageTrackerExceptionHandler._error_response(exc)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=APP_NAME,
        description="Self-hosted usage and cost dashboard for coding agents",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(InvalidApiKeyException, UsageTrackerExceptionHandler.handle_invalid_api_key_exception)
    app.add_exception_handler(InvalidSyncPayloadException, UsageTrackerExceptionHandler.handle_invalid_sync_payload_exception)
    app.add_exception_handler(BaseUsageTrackerException, UsageTrackerExceptionHandler.handle_base_exception)

    api_router = APIRouter(prefix="/api")
    api_router.include_router(usage_sync.router, tags=["usage-sync"])
    api_router.include_router(usage_stats.router, tags=["usage-stats"])

    # Health check routes (not under /api)
    app.include_router(health.router, tags=["health"])
    app.include_router(api_router)

    @app.get("/")
    async def root():
        """Root endpoint with dashboard information."""
        return {
            "message": f"Welcome to {APP_NAME}",
            "version": APP_VERSION,
            "owner": get_owner_name(),
            "appUrl": get_app_url(),
            "subscriptionPlan": get_subscription_plan(),
            "docs": "/docs",
            "health": "/health",
        }

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    debug = os.getenv("DEBUG", "False").lower() == "true"

    logger.info(f"Starting server on {host}:{port}")
    uvicorn.run("usage_dashboard.main:app", host=host, port=port, reload=debug)
