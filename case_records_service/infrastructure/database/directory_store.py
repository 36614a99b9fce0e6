# Operations for the shared directory collections (medical providers, insurance companies)
import datetime
import logging
import re
import uuid
from typing import Generic, List, Optional, Type, TypeVar

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from case_records_service.app.config import settings
from case_records_service.app.models import DirectoryInsuranceCompany, DirectoryProvider
from case_records_service.app.observability import directory_upserts_counter

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def fold_name(name: str) -> str:
    """Uniqueness key for directory names: trimmed and case-folded."""
    return name.strip().casefold()


class DirectoryStore(Generic[RecordT]):
    """
    One directory table. Names are unique under trim + case-fold; the folded
    name is stored as `name_key` with a unique index so that upsert-by-name is
    a single atomic find_one_and_update instead of lookup-then-insert.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str, record_model: Type[RecordT]):
        self.db = db
        self.collection_name = collection_name
        self.record_model = record_model

    @property
    def collection(self):
        return self.db[self.collection_name]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("name_key", ASCENDING)], unique=True)
        await self.collection.create_index([("id", ASCENDING)], unique=True)
        logger.info(f"Indexes ensured for directory collection '{self.collection_name}'.")

    async def upsert_by_name(self, record: BaseModel) -> Optional[RecordT]:
        """Inserts the record, or updates every field of the record whose name matches case-insensitively."""
        name = (getattr(record, "name", None) or "").strip()
        if not name:
            logger.info(f"Skipping upsert into '{self.collection_name}': record has no name.")
            return None

        fields = record.model_dump(mode="json", exclude={"id", "created_at", "updated_at"})
        fields["name"] = name
        fields["name_key"] = fold_name(name)
        now = datetime.datetime.now(datetime.UTC)
        update = {
            "$set": {**fields, "updated_at": now},
            "$setOnInsert": {"id": uuid.uuid4().hex, "created_at": now},
        }

        doc = None
        for attempt in range(2):
            try:
                doc = await self.collection.find_one_and_update(
                    {"name_key": fields["name_key"]},
                    update,
                    upsert=True,
                    return_document=ReturnDocument.AFTER,
                )
                break
            except DuplicateKeyError:
                # Two first-time upserts of the same name raced; the loser now matches the winner.
                if attempt == 0:
                    logger.warning(f"Concurrent insert of '{name}' into '{self.collection_name}'. Retrying as update.")
                    continue
                logger.error(f"Upsert of '{name}' into '{self.collection_name}' kept conflicting.", exc_info=True)
                return None
            except Exception as e:
                logger.error(f"Error upserting '{name}' into '{self.collection_name}': {e}", exc_info=True)
                return None

        if not doc:
            logger.error(f"Upsert of '{name}' into '{self.collection_name}' returned no document.")
            return None

        directory_upserts_counter.add(1, {"directory": self.collection_name})
        logger.info(f"Directory record upserted in '{self.collection_name}': {doc.get('id')} ({name})")
        return self.record_model(**doc)

    async def search(self, query: str, limit: Optional[int] = None) -> List[RecordT]:
        """Case-insensitive substring match on name, ordered by name. Failures degrade to no matches."""
        if not query or len(query) < settings.DIRECTORY_SEARCH_MIN_QUERY_LENGTH:
            return []
        limit = limit or settings.DIRECTORY_SEARCH_LIMIT

        try:
            cursor = self.collection.find({"name": {"$regex": re.escape(query), "$options": "i"}})
            cursor = cursor.sort("name_key", ASCENDING).limit(limit)
            docs = await cursor.to_list(length=limit)
        except Exception as e:
            logger.error(f"Error searching '{self.collection_name}' for '{query}': {e}", exc_info=True)
            return []
        return [self.record_model(**doc) for doc in docs]

    async def list_all(self) -> List[RecordT]:
        try:
            cursor = self.collection.find({}).sort("name_key", ASCENDING)
            docs = await cursor.to_list(length=None)
        except Exception as e:
            logger.error(f"Error listing '{self.collection_name}': {e}", exc_info=True)
            return []
        return [self.record_model(**doc) for doc in docs]

    async def update(self, record_id: str, changes: BaseModel) -> Optional[RecordT]:
        set_operations = changes.model_dump(mode="json", exclude_none=True, exclude={"id", "created_at", "updated_at"})
        if "name" in set_operations:
            name = set_operations["name"].strip()
            if not name:
                logger.info(f"Rejected update of {record_id} in '{self.collection_name}': blank name.")
                return None
            set_operations["name"] = name
            set_operations["name_key"] = fold_name(name)
        set_operations["updated_at"] = datetime.datetime.now(datetime.UTC)

        try:
            doc = await self.collection.find_one_and_update(
                {"id": record_id},
                {"$set": set_operations},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            logger.warning(f"Update of {record_id} in '{self.collection_name}' would duplicate the name '{set_operations.get('name')}'.")
            return None
        except Exception as e:
            logger.error(f"Error updating {record_id} in '{self.collection_name}': {e}", exc_info=True)
            return None

        if not doc:
            logger.warning(f"Directory record {record_id} not found in '{self.collection_name}' for update.")
            return None
        logger.info(f"Directory record {record_id} updated in '{self.collection_name}'.")
        return self.record_model(**doc)

    async def delete(self, record_id: str) -> bool:
        # Case-scoped copies embedded in cases are independent and stay untouched.
        try:
            result = await self.collection.delete_one({"id": record_id})
        except Exception as e:
            logger.error(f"Error deleting {record_id} from '{self.collection_name}': {e}", exc_info=True)
            return False
        if result.deleted_count == 0:
            logger.warning(f"Directory record {record_id} not found in '{self.collection_name}' for delete.")
            return False
        logger.info(f"Directory record {record_id} deleted from '{self.collection_name}'.")
        return True


def get_provider_directory(db: AsyncIOMotorDatabase) -> DirectoryStore[DirectoryProvider]:
    return DirectoryStore(db, settings.PROVIDERS_DIRECTORY_COLLECTION, DirectoryProvider)


def get_insurance_directory(db: AsyncIOMotorDatabase) -> DirectoryStore[DirectoryInsuranceCompany]:
    return DirectoryStore(db, settings.INSURANCE_DIRECTORY_COLLECTION, DirectoryInsuranceCompany)
