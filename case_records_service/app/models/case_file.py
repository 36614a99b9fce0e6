import datetime
import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .document_attachment import DocumentAttachment
from .medical_provider import MedicalProvider


class ActivityLogEntry(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:9])
    type: str = "system" # "system", "user" or "note"
    message: str
    timestamp: datetime.datetime = Field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    author: Optional[str] = None


class CaseFile(BaseModel):
    # Case fields owned by other parts of the workflow pass through untouched.
    model_config = ConfigDict(extra="allow")

    id: str
    documents: List[DocumentAttachment] = Field(default_factory=list)
    medical_providers: List[MedicalProvider] = Field(default_factory=list)
    activity_log: List[ActivityLogEntry] = Field(default_factory=list)

    def with_activity(self, message: str, entry_type: str = "system") -> "CaseFile":
        """Returns a copy of the case with one more activity log entry."""
        entry = ActivityLogEntry(type=entry_type, message=message)
        return self.model_copy(update={"activity_log": [*self.activity_log, entry]})
