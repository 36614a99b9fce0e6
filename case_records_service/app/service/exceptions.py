"""
Custom exceptions for the Case Records service.
"""

class BaseCaseRecordsError(Exception):
    """Base class for exceptions in this module."""
    pass

class CaseNotFoundError(BaseCaseRecordsError):
    """Raised when a case aggregate cannot be loaded."""
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Case with ID '{case_id}' not found.")

class DocumentNotFoundError(BaseCaseRecordsError):
    """Raised when a document index does not address a document of the case."""
    def __init__(self, case_id: str, document_index: int):
        self.case_id = case_id
        self.document_index = document_index
        super().__init__(f"Case '{case_id}' has no document at position {document_index}.")

class ProviderNotFoundError(BaseCaseRecordsError):
    """Raised when a medical provider is not part of the case."""
    def __init__(self, case_id: str, provider_id: str):
        self.case_id = case_id
        self.provider_id = provider_id
        super().__init__(f"Medical provider '{provider_id}' not found in case '{case_id}'.")

class DeletionNotConfirmedError(BaseCaseRecordsError):
    """Raised when a destructive operation is attempted without user confirmation."""
    def __init__(self, target: str):
        self.target = target
        super().__init__(f"Deletion of {target} requires confirmation.")

class PreviewAlreadyReleasedError(BaseCaseRecordsError):
    """Raised when a preview handle is released a second time."""
    def __init__(self, handle: str):
        self.handle = handle
        super().__init__(f"Preview '{handle}' was already released.")

class ConfigurationError(BaseCaseRecordsError):
    """Raised when a configuration issue is detected."""
    pass
