# Functions for the case aggregate read model collection
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from case_records_service.app.config import settings
from case_records_service.app.models import CaseFile

logger = logging.getLogger(__name__)


async def get_case(db: AsyncIOMotorDatabase, case_id: str) -> Optional[CaseFile]:
    case_doc = await db[settings.CASES_COLLECTION].find_one({"id": case_id})
    if not case_doc:
        return None
    case_doc.pop("_id", None)
    return CaseFile(**case_doc)


async def replace_case(db: AsyncIOMotorDatabase, case_data: CaseFile) -> CaseFile:
    """Stores the fully updated case aggregate, replacing the previous state."""
    case_dict = case_data.model_dump(mode="json")
    await db[settings.CASES_COLLECTION].replace_one(
        {"id": case_data.id},
        case_dict,
        upsert=True
    )
    logger.info(f"Case read model replaced for ID: {case_data.id}")
    return case_data
