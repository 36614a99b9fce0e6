# Application Configuration using Pydantic BaseSettings
from pydantic_settings import BaseSettings
from typing import Optional

class AppSettings(BaseSettings):
    # MongoDB
    MONGO_DETAILS: str = "mongodb://mongo:27017"
    DB_NAME: str = "case_records_db"
    CASES_COLLECTION: str = "cases"
    PROVIDERS_DIRECTORY_COLLECTION: str = "medical_providers_directory"
    INSURANCE_DIRECTORY_COLLECTION: str = "insurance_companies_directory"

    # Blob storage (Supabase-compatible storage API)
    BLOB_STORAGE_URL: Optional[str] = None # e.g., https://<project>.supabase.co
    BLOB_STORAGE_BUCKET: str = "case-documents"
    BLOB_STORAGE_API_KEY: Optional[str] = None
    BLOB_STORAGE_CACHE_CONTROL: str = "3600"

    # HTTP client
    DEFAULT_HTTP_TIMEOUT: float = 30.0

    # Directory search
    DIRECTORY_SEARCH_LIMIT: int = 10
    DIRECTORY_SEARCH_MIN_QUERY_LENGTH: int = 2
    DIRECTORY_SEARCH_DEBOUNCE_MS: int = 300

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None
    SERVICE_NAME_API: str = "case-records-api"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

# Instantiate settings to be imported by other modules
settings = AppSettings()

import logging
logger = logging.getLogger(__name__)
# Avoid logging the storage API key.
logger.info("Application settings module initialized.")
