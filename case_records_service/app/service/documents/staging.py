# Document staging: typed, previewable pending entries built from raw file selections
import logging
import os
import uuid
from typing import Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from case_records_service.app.models import DocumentType, PhotoCategory
from case_records_service.app.service.exceptions import PreviewAlreadyReleasedError

logger = logging.getLogger(__name__)

# Evaluated in order; the first rule with a matching keyword wins.
CLASSIFICATION_RULES = [
    (("retainer",), DocumentType.RETAINER),
    (("crash", "police"), DocumentType.CRASH_REPORT),
    (("medical", "record"), DocumentType.MEDICAL_RECORD),
    (("auth", "hipaa"), DocumentType.AUTHORIZATION),
    (("insurance",), DocumentType.INSURANCE_CARD),
]
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic"}
IMAGE_CONTENT_TYPE_PREFIX = "image/"


def classify(filename: str) -> DocumentType:
    lower = filename.lower()
    for keywords, document_type in CLASSIFICATION_RULES:
        if any(keyword in lower for keyword in keywords):
            return document_type
    if os.path.splitext(lower)[1] in IMAGE_EXTENSIONS:
        return DocumentType.PHOTO
    return DocumentType.OTHER


class FileSelection(BaseModel):
    name: str
    content_type: str = ""
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)


class PendingFile(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    file: FileSelection
    preview: Optional[str] = None # Handle owned by this entry until released
    type: DocumentType
    photo_category: Optional[PhotoCategory] = None


class PreviewRegistry:
    """Hands out preview handles for staged images and tracks which are still live."""

    def __init__(self):
        self._active: Set[str] = set()
        self.released: List[str] = []

    def create(self, file: FileSelection) -> str:
        handle = f"preview:{uuid.uuid4().hex}/{file.name}"
        self._active.add(handle)
        return handle

    def release(self, handle: str) -> None:
        if handle not in self._active:
            raise PreviewAlreadyReleasedError(handle)
        self._active.remove(handle)
        self.released.append(handle)

    @property
    def active_count(self) -> int:
        return len(self._active)


class DocumentStager:
    """
    The current upload batch. Positions are assigned when a file is staged and
    never shift: unstaging leaves an empty slot, so a repeated unstage or edit
    of the same position cannot reach a different file.
    """

    def __init__(self, previews: Optional[PreviewRegistry] = None):
        self.previews = previews or PreviewRegistry()
        self._slots: List[Optional[PendingFile]] = []

    @property
    def pending(self) -> List[PendingFile]:
        return [entry for entry in self._slots if entry is not None]

    def __len__(self) -> int:
        return len(self.pending)

    def stage(self, files: Iterable[FileSelection]) -> List[PendingFile]:
        """Adds the files to the current batch; earlier selections are kept."""
        new_entries = []
        for file in files:
            preview = None
            if file.content_type.startswith(IMAGE_CONTENT_TYPE_PREFIX):
                preview = self.previews.create(file)
            new_entries.append(PendingFile(file=file, preview=preview, type=classify(file.name)))
        self._slots.extend(new_entries)
        logger.info(f"Staged {len(new_entries)} file(s); {len(self)} pending.")
        return new_entries

    def _entry(self, index: int) -> Optional[PendingFile]:
        if 0 <= index < len(self._slots):
            return self._slots[index]
        return None

    def position_of(self, entry_id: str) -> Optional[int]:
        for index, entry in enumerate(self._slots):
            if entry is not None and entry.id == entry_id:
                return index
        return None

    def release_preview(self, entry: PendingFile) -> None:
        if entry.preview:
            self.previews.release(entry.preview)
            entry.preview = None

    def unstage(self, index: int) -> bool:
        entry = self._entry(index)
        if entry is None:
            logger.debug(f"Unstage ignored: no pending file at position {index}.")
            return False
        self.release_preview(entry)
        self._slots[index] = None
        return True

    def unstage_entry(self, entry_id: str) -> bool:
        index = self.position_of(entry_id)
        if index is None:
            logger.debug(f"Unstage ignored: no pending file with id {entry_id}.")
            return False
        return self.unstage(index)

    def set_type(self, index: int, document_type: DocumentType) -> bool:
        entry = self._entry(index)
        if entry is None:
            return False
        entry.type = document_type
        return True

    def set_photo_category(self, index: int, photo_category: Optional[PhotoCategory]) -> bool:
        entry = self._entry(index)
        if entry is None:
            return False
        entry.photo_category = photo_category
        return True

    def cancel(self) -> None:
        pending = self.pending
        for entry in pending:
            self.release_preview(entry)
        logger.info(f"Upload batch of {len(pending)} file(s) canceled.")
        self._slots = []

    def clear(self) -> None:
        # Entries the pipeline already released hold no preview anymore.
        for entry in self.pending:
            self.release_preview(entry)
        self._slots = []
