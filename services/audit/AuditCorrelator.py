"""Audit feed correlation.

Fetches the organization's audit events, joins them with the user list (for
display roles) and the document listing (for titles), and serves filtered,
paginated views. The last good feed of each organization is cached, so a
failed refresh can still be answered with a stale page.
"""

import asyncio
import math
from datetime import date, datetime, time

import httpx
import pytz

from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.clients.dms.models.Audit import AuditEvent
from shared.clients.dms.models.User import OrgUser
from shared.helper.HelperConfig import HelperConfig
from shared.models.audit import NO_ROLE_LABEL, AuditFilter, AuditPage, CorrelatedAuditEvent
from shared.models.context import OrgContext
from shared.models.errors import ApiRequestError, NetworkError

ROLE_LABELS = {
    "systemadmin": "Admin",
    "orgadmin": "Admin",
    "admin": "Admin",
    "contentmanager": "Manager",
    "orgmanager": "Manager",
    "manager": "Manager",
    "contentviewer": "Viewer",
    "orgviewer": "Viewer",
    "viewer": "Viewer",
    "guest": "Guest",
    "orgguest": "Guest",
}


def normalize_role(role: str | None) -> str | None:
    """Map a backend role key to its display label, e.g. "orgAdmin" -> "Admin", "teamLead" -> "TeamLead"."""
    if not role or not role.strip():
        return None
    role = role.strip()
    return ROLE_LABELS.get(role.lower(), role[0].upper() + role[1:])


def _day_start_ms(day: date, tz: pytz.BaseTzInfo) -> int:
    return int(tz.localize(datetime.combine(day, time.min)).timestamp() * 1000)


def _day_end_ms(day: date, tz: pytz.BaseTzInfo) -> int:
    return int(tz.localize(datetime.combine(day, time(23, 59, 59))).timestamp() * 1000)


def _haystack(event: CorrelatedAuditEvent) -> str:
    parts = (event.actor, event.type, event.title or event.document_title, event.doc_id, event.note, event.path)
    return " ".join(part for part in parts if part).lower()


def apply_filters(
    events: list[CorrelatedAuditEvent],
    audit_filter: AuditFilter,
    tz: pytz.BaseTzInfo,
) -> list[CorrelatedAuditEvent]:
    """
    Keeps the events matching every criterion of audit_filter. Order is preserved.

    Args:
        events (list[CorrelatedAuditEvent]): The events to filter.
        audit_filter (AuditFilter): The criteria, combined with logical AND.
        tz (pytz.BaseTzInfo): Timezone the calendar days of the date range refer to.
    """
    query = audit_filter.query.strip().lower()
    start_ms = _day_start_ms(audit_filter.start_date, tz) if audit_filter.start_date else None
    end_ms = _day_end_ms(audit_filter.end_date, tz) if audit_filter.end_date else None

    result = []
    for event in events:
        if query and query not in _haystack(event):
            continue
        if audit_filter.types and event.type not in audit_filter.types:
            continue
        if audit_filter.actors and event.actor not in audit_filter.actors:
            continue
        if start_ms is not None and event.timestamp_ms < start_ms:
            continue
        if end_ms is not None and event.timestamp_ms > end_ms:
            continue
        result.append(event)
    return result


def paginate(items: list, page: int, page_size: int) -> tuple[list, int, int]:
    """
    Cuts one page out of items.

    Returns:
        tuple[list, int, int]: The page items, the clamped page number and the total page count.
    """
    total_pages = max(1, math.ceil(len(items) / page_size))
    page = min(max(1, page), total_pages)
    offset = (page - 1) * page_size
    return items[offset:offset + page_size], page, total_pages


class AuditCorrelator:
    def __init__(self, helper_config: HelperConfig, dms_client: DMSClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._dms = dms_client
        self.tz = helper_config.get_timezone()
        self.fetch_limit = int(helper_config.get_number_val("AUDIT_FETCH_LIMIT", default=200))
        self.page_size = max(1, int(helper_config.get_number_val("AUDIT_PAGE_SIZE", default=15)))
        self._cache: dict[str, list[CorrelatedAuditEvent]] = {}

    ##########################################
    ############## CORRELATION ###############
    ##########################################

    def _resolve_role(self, event: AuditEvent, roles_by_email: dict[str, str]) -> str:
        email = (event.actor_email or event.actor or "").lower()
        label = normalize_role(roles_by_email.get(email)) or normalize_role(event.actor_role)
        return label or NO_ROLE_LABEL

    def correlate(
        self,
        events: list[AuditEvent],
        users: list[OrgUser],
        titles_by_id: dict[str, str],
    ) -> list[CorrelatedAuditEvent]:
        """Attach role label and document title to every event, newest first."""
        roles_by_email = {user.email.lower(): user.role for user in users if user.email and user.role}
        correlated = [
            CorrelatedAuditEvent(
                **event.model_dump(),
                role_label=self._resolve_role(event, roles_by_email),
                document_title=event.title or titles_by_id.get(event.doc_id or ""),
            )
            for event in events
        ]
        correlated.sort(key=lambda event: event.timestamp_ms, reverse=True)
        return correlated

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _fetch_titles(self, context: OrgContext) -> dict[str, str]:
        try:
            documents = await self._dms.do_fetch_documents(context.org_id)
        except (ApiRequestError, httpx.HTTPError, ValueError) as exc:
            self.logging.warning("Could not load document titles for audit of org %s: %s", context.org_id, exc)
            return {}
        return {doc.id: doc.title for doc in documents if doc.title}

    async def _fetch_users(self, context: OrgContext) -> list[OrgUser]:
        try:
            return await self._dms.do_fetch_users(context.org_id)
        except (ApiRequestError, httpx.HTTPError, ValueError) as exc:
            self.logging.warning("Could not load users for audit of org %s: %s", context.org_id, exc)
            return []

    async def do_refresh(self, context: OrgContext, include_self: bool = False) -> list[CorrelatedAuditEvent]:
        """
        Fetches the audit feed, users and document titles of an organization and replaces its cache.

        Args:
            context (OrgContext): Organization scope.
            include_self (bool): Keep the caller's own events in the feed.

        Returns:
            list[CorrelatedAuditEvent]: The correlated events, newest first.

        Raises:
            NetworkError: If the audit feed could not be fetched. The previous cache is kept.
        """
        try:
            events, users, titles_by_id = await asyncio.gather(
                self._dms.do_fetch_audit(context.org_id, limit=self.fetch_limit, exclude_self=not include_self),
                self._fetch_users(context),
                self._fetch_titles(context),
            )
        except (ApiRequestError, httpx.HTTPError, ValueError) as exc:
            raise NetworkError(f"Could not load audit events of org {context.org_id}: {exc}") from exc

        correlated = self.correlate(events, users, titles_by_id)
        self._cache[context.org_id] = correlated
        self.logging.debug("Cached %d audit events of org %s", len(correlated), context.org_id)
        return correlated

    async def do_query(
        self,
        context: OrgContext,
        audit_filter: AuditFilter | None = None,
        page: int = 1,
        include_self: bool = False,
    ) -> AuditPage:
        """
        Refreshes the feed and returns one filtered page of it.

        If the refresh fails but an earlier feed of the organization is cached,
        the page is built from the cache and marked stale.

        Raises:
            NetworkError: If the refresh fails and nothing is cached.
        """
        audit_filter = audit_filter or AuditFilter()
        stale = False
        try:
            events = await self.do_refresh(context, include_self=include_self)
        except NetworkError as exc:
            cached = self._cache.get(context.org_id)
            if cached is None:
                raise
            self.logging.warning("Serving cached audit events of org %s: %s", context.org_id, exc)
            events = cached
            stale = True

        filtered = apply_filters(events, audit_filter, self.tz)
        items, page, total_pages = paginate(filtered, page, self.page_size)
        return AuditPage(
            items=items,
            page=page,
            page_size=self.page_size,
            total_pages=total_pages,
            filtered_count=len(filtered),
            total_count=len(events),
            actors=sorted({event.actor for event in events}),
            stale=stale,
        )

    async def do_check_access(self, context: OrgContext) -> bool:
        try:
            return await self._dms.do_check_audit_access(context.org_id)
        except ApiRequestError as exc:
            if exc.status_code in (401, 403):
                return False
            raise NetworkError(f"Could not check audit access for org {context.org_id}: {exc}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise NetworkError(f"Could not check audit access for org {context.org_id}: {exc}") from exc
