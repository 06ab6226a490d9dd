from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_org_context, verify_api_key
from server.models.requests import LinkRequest, MoveVersionRequest
from shared.clients.dms.models.Document import DocumentDetails
from shared.clients.dms.models.Relationship import Relationships
from shared.models.context import OrgContext

router = APIRouter(prefix="/orgs/{org_id}", tags=["documents"], dependencies=[Depends(verify_api_key)])


############# RELATIONSHIPS ##############

@router.get("/documents/{document_id}/relationships")
async def get_relationships(
    request: Request,
    document_id: str,
    context: OrgContext = Depends(get_org_context),
) -> Relationships:
    return await request.app.state.relationship_graph.do_fetch_relationships(context, document_id)


@router.post("/documents/{document_id}/link")
async def link_document(
    request: Request,
    document_id: str,
    body: LinkRequest,
    context: OrgContext = Depends(get_org_context),
) -> Relationships:
    """Link document_id to body.target_id and return the refreshed relationships of document_id."""
    return await request.app.state.relationship_graph.do_link(
        context, document_id, body.target_id, body.link_type
    )


@router.delete("/documents/{document_id}/link/{target_id}")
async def unlink_document(
    request: Request,
    document_id: str,
    target_id: str,
    context: OrgContext = Depends(get_org_context),
) -> Relationships:
    return await request.app.state.relationship_graph.do_unlink(context, document_id, target_id)


@router.post("/documents/{document_id}/restore")
async def restore_document(
    request: Request,
    document_id: str,
    context: OrgContext = Depends(get_org_context),
) -> Relationships:
    return await request.app.state.relationship_graph.do_restore(context, document_id)


############# VERSIONS ##############

@router.get("/versions/{version_group_id}")
async def list_versions(
    request: Request,
    version_group_id: str,
    context: OrgContext = Depends(get_org_context),
) -> list[DocumentDetails]:
    return await request.app.state.version_manager.do_list_versions(context, version_group_id)


@router.post("/documents/{document_id}/set-current")
async def set_current_version(
    request: Request,
    document_id: str,
    context: OrgContext = Depends(get_org_context),
) -> list[DocumentDetails]:
    """Mark document_id as the current version and return its refreshed version group."""
    return await request.app.state.version_manager.do_set_current(context, document_id)


@router.post("/documents/{document_id}/move-version")
async def move_version(
    request: Request,
    document_id: str,
    body: MoveVersionRequest,
    context: OrgContext = Depends(get_org_context),
) -> list[DocumentDetails]:
    """Swap two version numbers in the group of document_id and return the refreshed group."""
    return await request.app.state.version_manager.do_move_version(
        context, document_id, body.from_version, body.to_version
    )
