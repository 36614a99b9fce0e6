# API Router for the shared provider and insurance-company directories
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from case_records_service.infrastructure.database.connection import get_db
from case_records_service.infrastructure.database.directory_store import (
    DirectoryStore,
    get_insurance_directory,
    get_provider_directory,
)
from case_records_service.app.models import (
    DirectoryInsuranceCompany,
    DirectoryInsuranceCompanyInput,
    DirectoryInsuranceCompanyUpdate,
    DirectoryProvider,
    DirectoryProviderInput,
    DirectoryProviderUpdate,
)
from case_records_service.app.service.providers.case_providers import save_insurance_company

logger = logging.getLogger(__name__)
router = APIRouter()


async def provider_directory_dependency(db: AsyncIOMotorDatabase = Depends(get_db)) -> DirectoryStore[DirectoryProvider]:
    return get_provider_directory(db)


async def insurance_directory_dependency(db: AsyncIOMotorDatabase = Depends(get_db)) -> DirectoryStore[DirectoryInsuranceCompany]:
    return get_insurance_directory(db)


# --- Medical providers ---

@router.get("/providers", response_model=List[DirectoryProvider], summary="List every directory provider by name.")
async def list_providers_api(directory: DirectoryStore = Depends(provider_directory_dependency)):
    return await directory.list_all()


@router.get("/providers/search", response_model=List[DirectoryProvider], summary="Search directory providers by name.")
async def search_providers_api(
    q: str = Query(""),
    directory: DirectoryStore = Depends(provider_directory_dependency)
):
    return await directory.search(q)


@router.post("/providers", response_model=DirectoryProvider, summary="Insert or update a provider by name.")
async def save_provider_api(
    provider: DirectoryProviderInput = Body(...),
    directory: DirectoryStore = Depends(provider_directory_dependency)
):
    if not provider.name.strip():
        raise HTTPException(status_code=400, detail="Provider name is required.")
    record = await directory.upsert_by_name(provider)
    if record is None:
        raise HTTPException(status_code=500, detail="Failed to save provider to the directory.")
    return record


@router.put("/providers/{provider_id}", response_model=DirectoryProvider, summary="Update a directory provider.")
async def update_provider_api(
    provider_id: str,
    changes: DirectoryProviderUpdate = Body(...),
    directory: DirectoryStore = Depends(provider_directory_dependency)
):
    record = await directory.update(provider_id, changes)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Directory provider {provider_id} not found or could not be updated.")
    return record


@router.delete("/providers/{provider_id}", status_code=204, summary="Delete a directory provider.")
async def delete_provider_api(provider_id: str, directory: DirectoryStore = Depends(provider_directory_dependency)):
    if not await directory.delete(provider_id):
        raise HTTPException(status_code=404, detail=f"Directory provider {provider_id} not found.")


# --- Insurance companies ---

@router.get("/insurance-companies", response_model=List[DirectoryInsuranceCompany], summary="List every directory insurance company by name.")
async def list_insurance_companies_api(directory: DirectoryStore = Depends(insurance_directory_dependency)):
    return await directory.list_all()


@router.get("/insurance-companies/search", response_model=List[DirectoryInsuranceCompany], summary="Search insurance companies by name.")
async def search_insurance_companies_api(
    q: str = Query(""),
    directory: DirectoryStore = Depends(insurance_directory_dependency)
):
    return await directory.search(q)


@router.post("/insurance-companies", response_model=DirectoryInsuranceCompany, summary="Insert or update an insurance company by name.")
async def save_insurance_company_api(
    company: DirectoryInsuranceCompanyInput = Body(...),
    directory: DirectoryStore = Depends(insurance_directory_dependency)
):
    if not company.name.strip():
        raise HTTPException(status_code=400, detail="Insurance company name is required.")
    record = await save_insurance_company(directory, company)
    if record is None:
        raise HTTPException(status_code=500, detail="Failed to save insurance company to the directory.")
    return record


@router.put("/insurance-companies/{company_id}", response_model=DirectoryInsuranceCompany, summary="Update a directory insurance company.")
async def update_insurance_company_api(
    company_id: str,
    changes: DirectoryInsuranceCompanyUpdate = Body(...),
    directory: DirectoryStore = Depends(insurance_directory_dependency)
):
    record = await directory.update(company_id, changes)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Insurance company {company_id} not found or could not be updated.")
    return record


@router.delete("/insurance-companies/{company_id}", status_code=204, summary="Delete a directory insurance company.")
async def delete_insurance_company_api(company_id: str, directory: DirectoryStore = Depends(insurance_directory_dependency)):
    if not await directory.delete(company_id):
        raise HTTPException(status_code=404, detail=f"Insurance company {company_id} not found.")
