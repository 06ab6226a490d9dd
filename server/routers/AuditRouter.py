from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from server.dependencies.auth import get_org_context, verify_api_key
from server.models.responses import AuditAccessResponse
from shared.models.audit import AuditFilter, AuditPage
from shared.models.context import OrgContext

router = APIRouter(prefix="/orgs/{org_id}/audit", tags=["audit"], dependencies=[Depends(verify_api_key)])


@router.get("")
async def query_audit(
    request: Request,
    q: str = "",
    types: list[str] = Query(default=[]),
    actors: list[str] = Query(default=[]),
    start: date | None = None,
    end: date | None = None,
    page: int = 1,
    include_self: bool = False,
    context: OrgContext = Depends(get_org_context),
) -> AuditPage:
    """Return one filtered page of the organization's audit feed.

    Args:
        request (Request): FastAPI request (provides app.state.audit_correlator).
        q (str): Free-text search over actor, type, title, document id, note and path.
        types (list[str]): Event types to keep; empty keeps all.
        actors (list[str]): Actors to keep; empty keeps all.
        start (date | None): First local calendar day to include.
        end (date | None): Last local calendar day to include.
        page (int): 1-based page number; clamped to the available pages.
        include_self (bool): Keep the caller's own events.
        context (OrgContext): Organization scope and acting user.

    Returns:
        AuditPage: The page; `stale` is set when served from cache after a failed refresh.
    """
    audit_filter = AuditFilter(query=q, types=set(types), actors=set(actors), start_date=start, end_date=end)
    return await request.app.state.audit_correlator.do_query(
        context, audit_filter, page=page, include_self=include_self
    )


@router.get("/can-access")
async def check_audit_access(
    request: Request,
    context: OrgContext = Depends(get_org_context),
) -> AuditAccessResponse:
    allowed = await request.app.state.audit_correlator.do_check_access(context)
    return AuditAccessResponse(org_id=context.org_id, allowed=allowed)
