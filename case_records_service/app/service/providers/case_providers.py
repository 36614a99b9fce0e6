# Case-scoped medical providers and their propagation into the shared directories
import logging
import time
from typing import Callable, Optional

from case_records_service.app.models import (
    CaseFile,
    DirectoryInsuranceCompany,
    DirectoryInsuranceCompanyInput,
    DirectoryProvider,
    DirectoryProviderInput,
    MedicalProvider,
    MedicalProviderDraft,
)
from case_records_service.app.service.case_updates import CaseUpdateCallback
from case_records_service.app.service.documents.facility_linker import cascade_provider_delete, has_provider
from case_records_service.app.service.exceptions import DeletionNotConfirmedError, ProviderNotFoundError
from case_records_service.infrastructure.database.directory_store import DirectoryStore

logger = logging.getLogger(__name__)


def _new_provider_id() -> str:
    return f"mp-{int(time.time() * 1000)}"


def draft_to_directory_input(draft: MedicalProviderDraft) -> DirectoryProviderInput:
    return DirectoryProviderInput(
        name=draft.name,
        type=draft.type,
        address=draft.address,
        city=draft.city,
        state=draft.state,
        zip=draft.zip,
        phone=draft.phone,
        fax=draft.fax,
        contact_person=draft.contact_person,
        notes=draft.notes,
    )


def directory_to_provider_draft(record: DirectoryProvider) -> MedicalProviderDraft:
    """Auto-fill mapping: directory fields are copied, case-specific fields start empty."""
    return MedicalProviderDraft(
        name=record.name,
        type=record.type,
        address=record.address,
        city=record.city,
        state=record.state,
        zip=record.zip,
        phone=record.phone,
        fax=record.fax,
        contact_person=record.contact_person,
        notes=record.notes,
    )


async def _save_to_directory(
    directory: DirectoryStore[DirectoryProvider],
    draft: MedicalProviderDraft
) -> Optional[DirectoryProvider]:
    # The case copy is already applied; a directory failure only leaves the directory stale.
    record = await directory.upsert_by_name(draft_to_directory_input(draft))
    if record is None:
        logger.warning(f"Provider '{draft.name}' could not be saved to the directory.")
    return record


async def add_provider(
    case: CaseFile,
    draft: MedicalProviderDraft,
    directory: DirectoryStore[DirectoryProvider],
    on_update_case: CaseUpdateCallback,
    id_factory: Callable[[], str] = _new_provider_id
) -> Optional[CaseFile]:
    if not draft.name.strip():
        logger.info(f"Ignoring provider without a name for case {case.id}.")
        return None

    provider = MedicalProvider(**draft.model_dump(exclude={"id"}), id=id_factory())
    updated_case = case.model_copy(update={"medical_providers": [*case.medical_providers, provider]})
    await on_update_case(updated_case)
    logger.info(f"Provider {provider.id} ('{provider.name}') added to case {case.id}.")

    await _save_to_directory(directory, draft)
    return updated_case


async def update_provider(
    case: CaseFile,
    provider_id: str,
    draft: MedicalProviderDraft,
    directory: DirectoryStore[DirectoryProvider],
    on_update_case: CaseUpdateCallback
) -> Optional[CaseFile]:
    if not has_provider(case, provider_id):
        raise ProviderNotFoundError(case.id, provider_id)
    if not draft.name.strip():
        logger.info(f"Ignoring edit of provider {provider_id} in case {case.id}: blank name.")
        return None

    providers = [
        MedicalProvider(**draft.model_dump(exclude={"id"}), id=provider_id) if provider.id == provider_id else provider
        for provider in case.medical_providers
    ]
    updated_case = case.model_copy(update={"medical_providers": providers})
    await on_update_case(updated_case)
    logger.info(f"Provider {provider_id} updated in case {case.id}.")

    await _save_to_directory(directory, draft)
    return updated_case


async def remove_provider(
    case: CaseFile,
    provider_id: str,
    on_update_case: CaseUpdateCallback,
    confirmed: bool = False
) -> CaseFile:
    """Removes the provider and clears every document link to it in one case update."""
    if not confirmed:
        raise DeletionNotConfirmedError(f"medical provider '{provider_id}' of case '{case.id}'")
    if not has_provider(case, provider_id):
        raise ProviderNotFoundError(case.id, provider_id)

    updated_case = cascade_provider_delete(case, provider_id)
    updated_case = updated_case.model_copy(update={
        "medical_providers": [p for p in case.medical_providers if p.id != provider_id]
    })
    await on_update_case(updated_case)
    logger.info(f"Provider {provider_id} removed from case {case.id}.")
    return updated_case


async def save_insurance_company(
    directory: DirectoryStore[DirectoryInsuranceCompany],
    company: DirectoryInsuranceCompanyInput
) -> Optional[DirectoryInsuranceCompany]:
    if not company.name.strip():
        return None
    return await directory.upsert_by_name(company)
