# Document-facility links: the many-to-one relation between case documents and case providers
import logging
from typing import List

from case_records_service.app.models import CaseFile, DocumentAttachment
from case_records_service.app.service.case_updates import CaseUpdateCallback, document_at, with_document
from case_records_service.app.service.exceptions import ProviderNotFoundError

logger = logging.getLogger(__name__)


def has_provider(case: CaseFile, provider_id: str) -> bool:
    return any(provider.id == provider_id for provider in case.medical_providers)


async def link_document(
    case: CaseFile,
    document_index: int,
    provider_id: str,
    on_update_case: CaseUpdateCallback
) -> CaseFile:
    document = document_at(case, document_index)
    if not has_provider(case, provider_id):
        raise ProviderNotFoundError(case.id, provider_id)

    if document.linked_facility_id and document.linked_facility_id != provider_id:
        logger.warning(
            f"Relinking document '{document.file_name}' in case {case.id} "
            f"from provider {document.linked_facility_id} to {provider_id}."
        )
    updated_case = with_document(case, document_index, document.model_copy(update={"linked_facility_id": provider_id}))
    await on_update_case(updated_case)
    return updated_case


async def unlink_document(
    case: CaseFile,
    document_index: int,
    on_update_case: CaseUpdateCallback
) -> CaseFile:
    document = document_at(case, document_index)
    updated_case = with_document(case, document_index, document.model_copy(update={"linked_facility_id": None}))
    await on_update_case(updated_case)
    return updated_case


def cascade_provider_delete(case: CaseFile, provider_id: str) -> CaseFile:
    """
    Clears every link to provider_id. Returns the new case without notifying
    anyone: callers fold this into the same update that removes the provider.
    """
    cleared = 0
    documents = []
    for document in case.documents:
        if document.linked_facility_id == provider_id:
            document = document.model_copy(update={"linked_facility_id": None})
            cleared += 1
        documents.append(document)
    if cleared:
        logger.info(f"Cleared {cleared} document link(s) to provider {provider_id} in case {case.id}.")
    return case.model_copy(update={"documents": documents})


def get_linked_documents(case: CaseFile, provider_id: str) -> List[DocumentAttachment]:
    return [document for document in case.documents if document.linked_facility_id == provider_id]
