"""Pydantic models for the upload pipeline."""

import hashlib
import os
from enum import Enum
from typing import Callable

from pydantic import BaseModel, Field, PrivateAttr

from shared.clients.dms.models.Document import DocumentDetails

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg"}
DEFAULT_MIME_TYPE = "application/octet-stream"

ProgressCallback = Callable[[int], None]


class UploadState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class UploadFile(BaseModel):
    """A local file to be uploaded, held in memory."""

    filename: str
    content: bytes
    mime_type: str | None = None

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def content_type(self) -> str:
        return self.mime_type or DEFAULT_MIME_TYPE

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lstrip(".").lower()

    @property
    def content_hash(self) -> str:
        return hashlib.sha256(self.content).hexdigest()


class UploadRequest(BaseModel):
    """
    What the caller wants uploaded and where it should land.

    Attributes:
        folder_path (list[str]): Destination folder as segments from the root, e.g. ["Finance", "2025"].
        department_id (str | None): Department to file the document under.
        declared_type (str | None): Document type passed to metadata extraction; inferred from the extension if unset.
        version_of (str | None): Upload as the next version of this document instead of a new document.
    """

    file: UploadFile
    folder_path: list[str] = []
    department_id: str | None = None
    declared_type: str | None = None
    version_of: str | None = None

    def resolved_type(self) -> str:
        if self.declared_type:
            return self.declared_type
        return "Image" if self.file.extension in IMAGE_EXTENSIONS else "PDF"


class UploadSession(BaseModel):
    """
    Ephemeral state of one upload. Lives only as long as the orchestration call
    (and its resubmissions); nothing here is persisted.
    """

    request: UploadRequest
    state: UploadState = UploadState.IDLE
    progress_percent: int = 0
    storage_key: str | None = None
    signed_url: str | None = None
    error: str | None = None
    document: DocumentDetails | None = None
    cancelled: bool = False
    attempts: int = 0

    _listeners: list[ProgressCallback] = PrivateAttr(default_factory=list)

    def subscribe(self, listener: ProgressCallback) -> None:
        self._listeners.append(listener)

    def report_progress(self, percent: int) -> None:
        if self.cancelled:
            return
        self.progress_percent = max(0, min(100, percent))
        for listener in self._listeners:
            listener(self.progress_percent)

    def cancel(self) -> None:
        """Abandon the session. Progress stops; steps not yet committed will not run."""
        self.cancelled = True

    def reset(self) -> None:
        self.state = UploadState.IDLE
        self.progress_percent = 0
        self.storage_key = None
        self.signed_url = None
        self.error = None
        self.document = None
        self.cancelled = False


class ExtractedMetadata(BaseModel):
    """Structured fields extracted from a document; every field is optional."""

    title: str | None = None
    subject: str | None = None
    sender: str | None = None
    receiver: str | None = None
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    summary: str | None = None
    description: str | None = None
    document_date: str | None = Field(default=None, alias="documentDate")

    model_config = {"populate_by_name": True}
