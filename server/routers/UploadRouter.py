from fastapi import APIRouter, Depends, File, Form, Request
from fastapi import UploadFile as MultipartFile

from server.dependencies.auth import get_org_context, verify_api_key
from server.models.responses import UploadResponse
from shared.models.context import OrgContext
from shared.models.upload import UploadFile, UploadRequest

router = APIRouter(prefix="/orgs/{org_id}", tags=["upload"], dependencies=[Depends(verify_api_key)])


@router.post("/uploads")
async def upload_document(
    request: Request,
    file: MultipartFile = File(...),
    folder_path: str = Form(""),
    department_id: str | None = Form(None),
    declared_type: str | None = Form(None),
    version_of: str | None = Form(None),
    context: OrgContext = Depends(get_org_context),
) -> UploadResponse:
    """Upload one file and commit it as a document (or as a new version of version_of).

    Args:
        request (Request): FastAPI request (provides app.state.upload_orchestrator).
        file (MultipartFile): The file to upload.
        folder_path (str): Destination folder as "A/B/C"; empty for the organization root.
        department_id (str | None): Owning department.
        declared_type (str | None): Document type; inferred from the extension when omitted.
        version_of (str | None): Id of a document whose version group receives this upload.
        context (OrgContext): Organization scope and acting user.

    Returns:
        UploadResponse: Final session state and the committed document.
    """
    orchestrator = request.app.state.upload_orchestrator
    upload_request = UploadRequest(
        file=UploadFile(filename=file.filename or "", content=await file.read(), mime_type=file.content_type),
        folder_path=[segment for segment in folder_path.split("/") if segment.strip()],
        department_id=department_id or None,
        declared_type=declared_type or None,
        version_of=version_of or None,
    )
    session = await orchestrator.do_upload(context, upload_request)
    return UploadResponse(
        state=session.state,
        progress_percent=session.progress_percent,
        storage_key=session.storage_key,
        document=session.document,
    )
