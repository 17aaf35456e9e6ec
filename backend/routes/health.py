"""
Health check endpoint.
"""
from datetime import datetime, timezone
import logging
import os

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _proof_storage_writable() -> bool:
    path = settings.proof_storage_dir
    return os.path.isdir(path) and os.access(path, os.W_OK)


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Database connectivity is required; proof storage is reported but not fatal."""
    checks = {"proof_storage": _proof_storage_writable()}
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": False, **checks},
        )

    if not checks["proof_storage"]:
        logger.warning(f"Proof storage not writable: {settings.proof_storage_dir}")
    return {
        "status": "healthy",
        "database": True,
        **checks,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
