"""
Health check endpoints.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict
from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from talentflow.core.database import get_db
from talentflow.core.deps import get_upload_queue
from talentflow.services.upload_queue import UploadQueue

router = APIRouter(tags=["Health"])
logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, str]:
    """
    Basic health check endpoint.

    Returns 200 OK if the service is running.
    """
    return {"status": "healthy", "timestamp": _now()}


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
def detailed_health_check(
    db: Session = Depends(get_db),
    queue: UploadQueue = Depends(get_upload_queue)
) -> Dict[str, Any]:
    """
    Detailed health check: database connectivity and upload queue state.
    """
    health_status = {"status": "healthy", "timestamp": _now(), "checks": {}}

    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {
            "status": "healthy",
            "message": "Database connection successful"
        }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database error: {str(e)}"
        }

    health_status["checks"]["upload_queue"] = {
        "status": "healthy",
        "processing": queue.is_processing,
        "pending": queue.pending_count,
        "duplicates": queue.duplicate_count,
    }

    return health_status
