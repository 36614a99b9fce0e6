# API Router for case documents, document-facility links and case medical providers
import logging
from functools import partial
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Query, UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from case_records_service.infrastructure.database.connection import get_db
from case_records_service.infrastructure.database import case_store
from case_records_service.infrastructure.database.directory_store import get_provider_directory
from case_records_service.infrastructure.storage.blob_storage_client import get_blob_storage_gateway
from case_records_service.app.models import (
    CaseFile,
    DocumentAttachment,
    DocumentType,
    MedicalProviderDraft,
    PhotoCategory,
)
from case_records_service.app.service.case_updates import document_at
from case_records_service.app.service.documents import facility_linker, upload_pipeline
from case_records_service.app.service.documents.staging import DocumentStager, FileSelection
from case_records_service.app.service.providers import case_providers
from case_records_service.app.service.interfaces.blob_storage import AbstractBlobStorageGateway
from case_records_service.app.service.exceptions import (
    BaseCaseRecordsError,
    CaseNotFoundError,
    DeletionNotConfirmedError,
    DocumentNotFoundError,
    ProviderNotFoundError,
)

logger = logging.getLogger(__name__)
router = APIRouter()


# --- Request/response models ---

class UploadResponse(BaseModel):
    documents: List[DocumentAttachment]
    errors: List[str]
    error_message: Optional[str] = None

class DeleteDocumentResponse(BaseModel):
    removed: DocumentAttachment
    blob_delete_error: Optional[str] = None

class RenameDocumentRequest(BaseModel):
    file_name: str

class AddTagRequest(BaseModel):
    tag: str

class LinkFacilityRequest(BaseModel):
    provider_id: str


async def _load_case(db: AsyncIOMotorDatabase, case_id: str) -> CaseFile:
    case = await case_store.get_case(db, case_id)
    if case is None:
        raise CaseNotFoundError(case_id)
    return case


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (CaseNotFoundError, DocumentNotFoundError, ProviderNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DeletionNotConfirmedError):
        return HTTPException(status_code=428, detail=str(exc))
    if isinstance(exc, (BaseCaseRecordsError, ValueError)):
        return HTTPException(status_code=400, detail=str(exc))
    logger.error(f"Unexpected error handling case request: {exc}", exc_info=True)
    return HTTPException(status_code=500, detail="An unexpected error occurred while updating the case.")


@router.get("/cases/{case_id}", response_model=CaseFile, summary="Fetch a case with its documents and providers.")
async def get_case_api(case_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        return await _load_case(db, case_id)
    except Exception as e:
        raise _http_error(e)


# --- Documents ---

@router.post("/cases/{case_id}/documents", response_model=UploadResponse, summary="Upload files and attach them to a case.")
async def upload_documents_api(
    case_id: str,
    files: List[UploadFile] = File(...),
    types: Optional[List[DocumentType]] = Form(None),
    photo_categories: Optional[List[PhotoCategory]] = Form(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    gateway: AbstractBlobStorageGateway = Depends(get_blob_storage_gateway)
):
    try:
        case = await _load_case(db, case_id)
        stager = DocumentStager()
        selections = [
            FileSelection(name=f.filename or "unnamed", content_type=f.content_type or "", data=await f.read())
            for f in files
        ]
        stager.stage(selections)
        # Explicit types override the filename classification, position by position.
        for index, document_type in enumerate(types or []):
            stager.set_type(index, document_type)
        for index, photo_category in enumerate(photo_categories or []):
            stager.set_photo_category(index, photo_category)

        result = await upload_pipeline.confirm_upload(case, stager, gateway, partial(case_store.replace_case, db))
        return UploadResponse(documents=result.documents, errors=result.errors, error_message=result.error_message)
    except Exception as e:
        raise _http_error(e)


@router.delete("/cases/{case_id}/documents/{document_index}", response_model=DeleteDocumentResponse, summary="Delete a case document.")
async def delete_document_api(
    case_id: str,
    document_index: int,
    confirm: bool = Query(False),
    db: AsyncIOMotorDatabase = Depends(get_db),
    gateway: AbstractBlobStorageGateway = Depends(get_blob_storage_gateway)
):
    try:
        case = await _load_case(db, case_id)
        result = await upload_pipeline.delete_document(
            case, document_index, gateway, partial(case_store.replace_case, db), confirmed=confirm
        )
        return DeleteDocumentResponse(removed=result.removed, blob_delete_error=result.blob_delete_error)
    except Exception as e:
        raise _http_error(e)


@router.patch("/cases/{case_id}/documents/{document_index}", response_model=DocumentAttachment, summary="Rename a case document.")
async def rename_document_api(
    case_id: str,
    document_index: int,
    request_data: RenameDocumentRequest = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    try:
        case = await _load_case(db, case_id)
        updated = await upload_pipeline.rename_document(
            case, document_index, request_data.file_name, partial(case_store.replace_case, db)
        )
        return document_at(updated or case, document_index)
    except Exception as e:
        raise _http_error(e)


@router.post("/cases/{case_id}/documents/{document_index}/tags", response_model=DocumentAttachment, summary="Tag a case document.")
async def add_tag_api(
    case_id: str,
    document_index: int,
    request_data: AddTagRequest = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    try:
        case = await _load_case(db, case_id)
        updated = await upload_pipeline.add_tag(case, document_index, request_data.tag, partial(case_store.replace_case, db))
        return document_at(updated or case, document_index)
    except Exception as e:
        raise _http_error(e)


@router.put("/cases/{case_id}/documents/{document_index}/facility", response_model=DocumentAttachment, summary="Link a document to a case provider.")
async def link_document_api(
    case_id: str,
    document_index: int,
    request_data: LinkFacilityRequest = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    try:
        case = await _load_case(db, case_id)
        updated = await facility_linker.link_document(
            case, document_index, request_data.provider_id, partial(case_store.replace_case, db)
        )
        return updated.documents[document_index]
    except Exception as e:
        raise _http_error(e)


@router.delete("/cases/{case_id}/documents/{document_index}/facility", response_model=DocumentAttachment, summary="Unlink a document from its provider.")
async def unlink_document_api(case_id: str, document_index: int, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        case = await _load_case(db, case_id)
        updated = await facility_linker.unlink_document(case, document_index, partial(case_store.replace_case, db))
        return updated.documents[document_index]
    except Exception as e:
        raise _http_error(e)


# --- Case medical providers ---

@router.get("/cases/{case_id}/providers/{provider_id}/documents", response_model=List[DocumentAttachment], summary="Documents linked to a case provider.")
async def linked_documents_api(case_id: str, provider_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        case = await _load_case(db, case_id)
        return facility_linker.get_linked_documents(case, provider_id)
    except Exception as e:
        raise _http_error(e)


@router.post("/cases/{case_id}/providers", response_model=CaseFile, summary="Add a medical provider to a case.")
async def add_provider_api(
    case_id: str,
    draft: MedicalProviderDraft = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    if not draft.name.strip():
        raise HTTPException(status_code=400, detail="Provider name is required.")
    try:
        case = await _load_case(db, case_id)
        return await case_providers.add_provider(
            case, draft, get_provider_directory(db), partial(case_store.replace_case, db)
        )
    except Exception as e:
        raise _http_error(e)


@router.put("/cases/{case_id}/providers/{provider_id}", response_model=CaseFile, summary="Edit a case medical provider.")
async def update_provider_api(
    case_id: str,
    provider_id: str,
    draft: MedicalProviderDraft = Body(...),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    if not draft.name.strip():
        raise HTTPException(status_code=400, detail="Provider name is required.")
    try:
        case = await _load_case(db, case_id)
        return await case_providers.update_provider(
            case, provider_id, draft, get_provider_directory(db), partial(case_store.replace_case, db)
        )
    except Exception as e:
        raise _http_error(e)


@router.delete("/cases/{case_id}/providers/{provider_id}", response_model=CaseFile, summary="Remove a case medical provider.")
async def remove_provider_api(
    case_id: str,
    provider_id: str,
    confirm: bool = Query(False),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    try:
        case = await _load_case(db, case_id)
        return await case_providers.remove_provider(
            case, provider_id, partial(case_store.replace_case, db), confirmed=confirm
        )
    except Exception as e:
        raise _http_error(e)
