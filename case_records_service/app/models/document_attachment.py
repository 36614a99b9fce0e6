import enum
from typing import Optional, List

from pydantic import BaseModel, Field


class DocumentType(str, enum.Enum):
    RETAINER = "retainer"
    CRASH_REPORT = "crash_report"
    MEDICAL_RECORD = "medical_record"
    AUTHORIZATION = "authorization"
    INSURANCE_CARD = "insurance_card"
    PHOTO = "photo"
    EMAIL = "email"
    OTHER = "other"


class PhotoCategory(str, enum.Enum):
    VEHICLE_DAMAGE = "vehicle_damage"
    PROPERTY_DAMAGE = "property_damage"
    INJURY = "injury"
    ACCIDENT_SCENE = "accident_scene"
    OTHER = "other"


class DocumentAttachment(BaseModel):
    type: DocumentType
    file_name: str
    mime_type: str = "application/octet-stream"
    source: Optional[str] = None # e.g. "Manual Upload", "Client Portal", "Email"
    tags: List[str] = Field(default_factory=list) # Ordered, duplicates allowed
    storage_path: Optional[str] = None # Blob storage key
    storage_url: Optional[str] = None
    photo_category: Optional[PhotoCategory] = None
    linked_facility_id: Optional[str] = None # Weak reference to MedicalProvider.id in the same case
