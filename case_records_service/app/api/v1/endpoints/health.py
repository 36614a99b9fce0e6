# API Router for Health Checks
import logging

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from case_records_service.infrastructure.database.connection import get_db
from case_records_service.app.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/health", tags=["Monitoring"])
async def health_check(db: AsyncIOMotorDatabase = Depends(get_db)):
    mongodb_status = "connected"
    try:
        await db.command('ping')
    except Exception as e:
        logger.error(f"MongoDB health check ping failed: {e}")
        mongodb_status = "disconnected"

    blob_storage_status = "configured" if settings.BLOB_STORAGE_URL else "not_configured"
    return {
        "status": "ok",
        "components": {"mongodb": mongodb_status, "blob_storage": blob_storage_status},
        "service_name": settings.SERVICE_NAME_API,
    }
