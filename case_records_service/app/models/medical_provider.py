import enum
from typing import Optional

from pydantic import BaseModel


class MedicalProviderType(str, enum.Enum):
    HOSPITAL = "hospital"
    ER = "er"
    URGENT_CARE = "urgent_care"
    CHIROPRACTOR = "chiropractor"
    PHYSICAL_THERAPY = "physical_therapy"
    ORTHOPEDIC = "orthopedic"
    NEUROLOGIST = "neurologist"
    PAIN_MANAGEMENT = "pain_management"
    PRIMARY_CARE = "primary_care"
    IMAGING = "imaging"
    SURGERY_CENTER = "surgery_center"
    OTHER = "other"


class PreferredContactMethod(str, enum.Enum):
    EMAIL = "email"
    FAX = "fax"
    MAIL = "mail"
    PHONE = "phone"


class MedicalProviderDraft(BaseModel):
    """Editable fields of a case-scoped provider (the add/edit form)."""
    name: str = ""
    type: MedicalProviderType = MedicalProviderType.HOSPITAL
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    phone: str = ""
    fax: str = ""
    email: str = ""
    contact_person: str = ""
    notes: str = ""

    # Case-specific fields, never sourced from the directory
    total_cost: Optional[float] = None
    date_of_first_visit: Optional[str] = None
    date_of_last_visit: Optional[str] = None
    is_currently_treating: bool = False
    preferred_contact_method: Optional[PreferredContactMethod] = None


class MedicalProvider(MedicalProviderDraft):
    id: str
