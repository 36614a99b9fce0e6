# Upload pipeline: persists staged files and maintains the case document list
import logging
import re
import time
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from case_records_service.app.models import CaseFile, DocumentAttachment, DocumentType
from case_records_service.app.observability import (
    tracer,
    documents_uploaded_counter,
    document_upload_failures_counter,
    orphaned_blob_counter,
)
from case_records_service.app.service.case_updates import CaseUpdateCallback, document_at, with_document
from case_records_service.app.service.documents.staging import DocumentStager
from case_records_service.app.service.exceptions import DeletionNotConfirmedError
from case_records_service.app.service.interfaces.blob_storage import (
    AbstractBlobStorageGateway,
    BlobOperationError,
)

logger = logging.getLogger(__name__)

MANUAL_UPLOAD_SOURCE = "Manual Upload"
DEFAULT_MIME_TYPE = "application/octet-stream"
_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(name: str) -> str:
    return _UNSAFE_KEY_CHARS.sub("_", name)


def build_storage_key(case_id: str, epoch_millis: int, file_name: str) -> str:
    return f"{sanitize_filename(case_id)}/{epoch_millis}_{sanitize_filename(file_name)}"


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class UploadResult(BaseModel):
    case: Optional[CaseFile] = None # None when nothing was applied
    documents: List[DocumentAttachment] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def error_message(self) -> Optional[str]:
        return "\n".join(self.errors) if self.errors else None


class DocumentDeletionResult(BaseModel):
    case: CaseFile
    removed: DocumentAttachment
    blob_delete_error: Optional[str] = None # Set when the backing blob may be orphaned


async def confirm_upload(
    case: CaseFile,
    stager: DocumentStager,
    gateway: AbstractBlobStorageGateway,
    on_update_case: CaseUpdateCallback,
    clock: Callable[[], int] = _epoch_millis
) -> UploadResult:
    """
    Uploads every pending file, one at a time and in order, then applies the
    successful ones to the case in a single update.

    A failed file is reported as "<file name>: <message>" and does not stop
    the batch. Each pending preview is released exactly once, and the batch is
    empty afterwards whatever the outcome.
    """
    if not stager.pending:
        return UploadResult()

    new_documents: List[DocumentAttachment] = []
    errors: List[str] = []
    last_millis = 0

    with tracer.start_as_current_span("confirm_upload") as span:
        span.set_attribute("case.id", case.id)
        span.set_attribute("upload.batch_size", len(stager.pending))
        try:
            for pending in list(stager.pending):
                # Strictly increasing so same-named files in one batch never share a key
                last_millis = max(clock(), last_millis + 1)
                key = build_storage_key(case.id, last_millis, pending.file.name)
                try:
                    result = await gateway.put(key, pending.file.data, pending.file.content_type or None)
                except Exception as e:
                    logger.error(f"Blob storage call failed for {pending.file.name}: {e}", exc_info=True)
                    result = BlobOperationError(error=str(e) or e.__class__.__name__)
                finally:
                    stager.release_preview(pending)

                if isinstance(result, BlobOperationError):
                    errors.append(f"{pending.file.name}: {result.error}")
                    document_upload_failures_counter.add(1)
                    continue

                new_documents.append(DocumentAttachment(
                    type=pending.type,
                    file_name=pending.file.name,
                    mime_type=pending.file.content_type or DEFAULT_MIME_TYPE,
                    source=MANUAL_UPLOAD_SOURCE,
                    tags=[],
                    storage_path=result.key,
                    storage_url=result.url,
                    photo_category=pending.photo_category if pending.type == DocumentType.PHOTO else None,
                ))
        finally:
            # Failed files are not retried; the user selects them again.
            stager.clear()

        span.set_attribute("upload.succeeded", len(new_documents))
        span.set_attribute("upload.failed", len(errors))

    updated_case = None
    if new_documents:
        updated_case = case.model_copy(update={"documents": [*case.documents, *new_documents]})
        file_names = ", ".join(doc.file_name for doc in new_documents)
        updated_case = updated_case.with_activity(f"Uploaded {len(new_documents)} document(s): {file_names}")
        try:
            await on_update_case(updated_case)
        except Exception as e:
            # Stored blobs are no longer referenced by any case.
            stored_keys = [doc.storage_path for doc in new_documents]
            orphaned_blob_counter.add(len(stored_keys))
            logger.error(
                f"Case update for {case.id} failed after storing {len(stored_keys)} blob(s); "
                f"orphaned keys: {stored_keys}. Error: {e}",
                exc_info=True
            )
            raise
        documents_uploaded_counter.add(len(new_documents))

    if errors:
        logger.warning(f"Upload batch for case {case.id} had {len(errors)} failure(s): {errors}")
    logger.info(f"Upload batch for case {case.id} finished: {len(new_documents)} stored, {len(errors)} failed.")
    return UploadResult(case=updated_case, documents=new_documents, errors=errors)


async def delete_document(
    case: CaseFile,
    document_index: int,
    gateway: AbstractBlobStorageGateway,
    on_update_case: CaseUpdateCallback,
    confirmed: bool = False
) -> DocumentDeletionResult:
    if not confirmed:
        raise DeletionNotConfirmedError(f"document at position {document_index} of case '{case.id}'")
    document = document_at(case, document_index)

    blob_delete_error = None
    if document.storage_path:
        try:
            failure = await gateway.delete(document.storage_path)
        except Exception as e:
            logger.error(f"Blob storage delete raised for {document.storage_path}: {e}", exc_info=True)
            failure = BlobOperationError(error=str(e) or e.__class__.__name__)
        if failure is not None:
            # The case record is authoritative; the blob may now be orphaned.
            blob_delete_error = failure.error
            orphaned_blob_counter.add(1)
            logger.warning(
                f"Blob {document.storage_path} could not be deleted ({failure.error}); "
                f"removing document '{document.file_name}' from case {case.id} anyway."
            )

    remaining = case.documents[:document_index] + case.documents[document_index + 1:]
    updated_case = case.model_copy(update={"documents": remaining})
    updated_case = updated_case.with_activity(f"Document deleted: {document.file_name}")
    await on_update_case(updated_case)
    logger.info(f"Document '{document.file_name}' removed from case {case.id}.")
    return DocumentDeletionResult(case=updated_case, removed=document, blob_delete_error=blob_delete_error)


async def rename_document(
    case: CaseFile,
    document_index: int,
    new_name: str,
    on_update_case: CaseUpdateCallback
) -> Optional[CaseFile]:
    new_name = (new_name or "").strip()
    if not new_name:
        return None
    document = document_at(case, document_index)
    updated_case = with_document(case, document_index, document.model_copy(update={"file_name": new_name}))
    await on_update_case(updated_case)
    return updated_case


async def add_tag(
    case: CaseFile,
    document_index: int,
    tag: str,
    on_update_case: CaseUpdateCallback
) -> Optional[CaseFile]:
    tag = (tag or "").strip()
    if not tag:
        return None
    document = document_at(case, document_index)
    # Tags are an ordered sequence; repeating a tag is allowed.
    updated_case = with_document(case, document_index, document.model_copy(update={"tags": [*document.tags, tag]}))
    await on_update_case(updated_case)
    return updated_case
