"""Generic DMS document model, independent of the backend engine."""

from datetime import datetime
from pydantic import BaseModel


class DocumentBase(BaseModel):
    """
    Represents a single document as returned by a DMS client.
    """
    engine: str
    id: str


class DocumentDetails(DocumentBase):
    """
    Represents a single document with its metadata, placement and version chain membership.
    """
    title: str | None = None
    filename: str | None = None
    type: str | None = None
    subject: str | None = None
    description: str | None = None
    category: str | None = None
    sender: str | None = None
    receiver: str | None = None
    document_date: str | None = None
    tags: list[str] = []
    keywords: list[str] = []
    summary: str | None = None
    folder_path: list[str] = []
    department_id: str | None = None

    # file info
    storage_key: str | None = None
    file_size_bytes: int | None = None
    mime_type: str | None = None
    content_hash: str | None = None

    # versioning
    version_group_id: str | None = None
    version_number: int = 1
    is_current_version: bool = True
    supersedes_id: str | None = None

    # lifecycle
    uploaded_at: datetime | None = None
    deleted_at: datetime | None = None

    # OCR text, only filled client-side right after an upload
    content: str | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class DocumentsListResponse(BaseModel):
    """
    Represents the response from a DMS when fetching the documents of an organization.
    """
    engine: str
    documents: list[DocumentDetails] = []
    overallCount: int | None = None
