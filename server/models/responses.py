from pydantic import BaseModel

from shared.clients.dms.models.Document import DocumentDetails
from shared.models.upload import UploadState


class UploadResponse(BaseModel):
    state: UploadState
    progress_percent: int
    storage_key: str | None
    document: DocumentDetails | None


class AuditAccessResponse(BaseModel):
    org_id: str
    allowed: bool
