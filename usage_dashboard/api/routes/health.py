"""
Health check endpoints for deployments.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from usage_dashboard.core.database import get_connection_info, get_db_session
from usage_dashboard.core.logger import get_logger

logger = get_logger(name="health")
router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if the service is running.
    """
    return {"status": "healthy", "service": "usage-dashboard"}


@router.get("/health/database")
async def database_health_check():
    """
    Database health check endpoint.
    Returns 503 when the database can't be reached.
    """
    try:
        async with get_db_session() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "disconnected", "error": str(e)},
        )

    pool_info = get_connection_info()
    return {
        "status": "healthy",
        "database": "connected",
        "pool_status": pool_info["pool_status"],
        "configuration": {
            "pool_size": pool_info["pool_size"],
            "max_overflow": pool_info["max_overflow"],
            "pool_timeout": pool_info["pool_timeout"],
            "pool_recycle": pool_info["pool_recycle"],
        },
    }
