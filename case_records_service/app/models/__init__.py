from .document_attachment import DocumentAttachment, DocumentType, PhotoCategory
from .medical_provider import MedicalProvider, MedicalProviderDraft, MedicalProviderType, PreferredContactMethod
from .case_file import ActivityLogEntry, CaseFile
from .directory_records import (
    DirectoryProvider,
    DirectoryProviderInput,
    DirectoryProviderUpdate,
    DirectoryInsuranceCompany,
    DirectoryInsuranceCompanyInput,
    DirectoryInsuranceCompanyUpdate,
    InsuranceCompanyType,
)

__all__ = [
    "DocumentAttachment",
    "DocumentType",
    "PhotoCategory",
    "MedicalProvider",
    "MedicalProviderDraft",
    "MedicalProviderType",
    "PreferredContactMethod",
    "ActivityLogEntry",
    "CaseFile",
    "DirectoryProvider",
    "DirectoryProviderInput",
    "DirectoryProviderUpdate",
    "DirectoryInsuranceCompany",
    "DirectoryInsuranceCompanyInput",
    "DirectoryInsuranceCompanyUpdate",
    "InsuranceCompanyType",
]
