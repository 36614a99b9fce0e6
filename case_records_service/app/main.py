# FastAPI Application Entry Point
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import httpx

# Configuration and Observability
from case_records_service.app.config import settings
from case_records_service.app.observability import setup_opentelemetry, logger

# Initialize OpenTelemetry
setup_opentelemetry(service_name=settings.SERVICE_NAME_API)

# Import instrumentors after OTel SDK is initialized
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.pymongo import PymongoInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

# Database connection
from case_records_service.infrastructure.database.connection import connect_to_mongo, close_mongo_connection, get_db
from case_records_service.infrastructure.database.directory_store import get_insurance_directory, get_provider_directory
from case_records_service.app.service.exceptions import ConfigurationError

# API Routers
from case_records_service.app.api.v1.endpoints import health as health_router
from case_records_service.app.api.v1.endpoints import cases as cases_router
from case_records_service.app.api.v1.endpoints import directory as directory_router

# --- FastAPI Application Instance ---
app = FastAPI(
    title="Case Records Service",
    description="Case documents, case medical providers and the shared provider and insurance directories.",
    version="0.1.0"
)

# --- Event Handlers for DB Connection & OTel Instrumentation ---
@app.on_event("startup")
async def startup_event():
    logger.info("FastAPI application startup...")
    try:
        app.state.http_client = httpx.AsyncClient(timeout=settings.DEFAULT_HTTP_TIMEOUT)
        HTTPXClientInstrumentor().instrument()
        logger.info(f"HTTPX AsyncClient initialized with timeout {settings.DEFAULT_HTTP_TIMEOUT} and instrumented.")

        await connect_to_mongo()
        async for db in get_db():
            await get_provider_directory(db).ensure_indexes()
            await get_insurance_directory(db).ensure_indexes()
            break
        logger.info("MongoDB connection established and directory indexes ensured.")

        PymongoInstrumentor().instrument()
        logger.info("PyMongo instrumentation complete.")

    except Exception as e:
        logger.error(f"Failed during startup: {e}", exc_info=True)

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("FastAPI application shutdown...")

    if hasattr(app.state, 'http_client') and app.state.http_client:
        await app.state.http_client.aclose()
        logger.info("HTTPX AsyncClient closed.")

    close_mongo_connection()

# Blob storage settings are checked when the gateway is built for a request.
@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": str(exc)})

FastAPIInstrumentor.instrument_app(app)
logger.info("FastAPI instrumentation complete.")

# Include API Routers
app.include_router(health_router.router)
app.include_router(cases_router.router, prefix="/api/v1", tags=["Cases"])
app.include_router(directory_router.router, prefix="/api/v1/directory", tags=["Directory"])

logger.info("API routers included. Application setup complete.")

# To run: uvicorn case_records_service.app.main:app --reload --port 8000
