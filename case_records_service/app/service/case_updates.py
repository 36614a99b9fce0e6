# Helpers shared by the operations that produce a next case state
from typing import Awaitable, Callable

from case_records_service.app.models import CaseFile, DocumentAttachment
from case_records_service.app.service.exceptions import DocumentNotFoundError

# Receives the fully updated case aggregate; persisting it is the caller's concern.
CaseUpdateCallback = Callable[[CaseFile], Awaitable[None]]


def document_at(case: CaseFile, index: int) -> DocumentAttachment:
    if not 0 <= index < len(case.documents):
        raise DocumentNotFoundError(case.id, index)
    return case.documents[index]


def with_document(case: CaseFile, index: int, document: DocumentAttachment) -> CaseFile:
    """Returns a copy of the case with the document at index replaced, positions unchanged."""
    documents = list(case.documents)
    documents[index] = document
    return case.model_copy(update={"documents": documents})
