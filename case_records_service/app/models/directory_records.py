import datetime
import enum
from typing import Optional

from pydantic import BaseModel, Field

from .medical_provider import MedicalProviderType


class InsuranceCompanyType(str, enum.Enum):
    AUTO = "auto"
    HEALTH = "health"
    COMMERCIAL = "commercial"
    WORKERS_COMP = "workers_comp"
    GENERAL = "general"


# --- Medical providers directory ---

class DirectoryProviderInput(BaseModel):
    name: str
    type: MedicalProviderType = MedicalProviderType.OTHER
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    phone: str = ""
    fax: str = ""
    contact_person: str = ""
    notes: str = ""


class DirectoryProviderUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[MedicalProviderType] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    contact_person: Optional[str] = None
    notes: Optional[str] = None


class DirectoryProvider(DirectoryProviderInput):
    id: str
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    updated_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))


# --- Insurance companies directory ---

class DirectoryInsuranceCompanyInput(BaseModel):
    name: str
    type: InsuranceCompanyType = InsuranceCompanyType.AUTO
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    mailing_address: str = ""
    mailing_city: str = ""
    mailing_state: str = ""
    mailing_zip: str = ""
    phone: str = ""
    fax: str = ""
    claims_phone: str = ""
    website: str = ""
    notes: str = ""


class DirectoryInsuranceCompanyUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[InsuranceCompanyType] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    mailing_address: Optional[str] = None
    mailing_city: Optional[str] = None
    mailing_state: Optional[str] = None
    mailing_zip: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    claims_phone: Optional[str] = None
    website: Optional[str] = None
    notes: Optional[str] = None


class DirectoryInsuranceCompany(DirectoryInsuranceCompanyInput):
    id: str
    created_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    updated_at: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
