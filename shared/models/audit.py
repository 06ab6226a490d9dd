from datetime import date

from pydantic import BaseModel

from shared.clients.dms.models.Audit import AuditEvent

NO_ROLE_LABEL = "—"


class CorrelatedAuditEvent(AuditEvent):
    """
    An audit event enriched with the actor's display role and the document title.
    """
    role_label: str = NO_ROLE_LABEL
    document_title: str | None = None


class AuditFilter(BaseModel):
    """
    Criteria combined with logical AND. Empty criteria match everything.

    Attributes:
        query (str): Case-insensitive substring over actor, type, title, doc id, note and path.
        types (set[str]): Allowed event types.
        actors (set[str]): Allowed actors.
        start_date (date | None): First day included (local calendar day).
        end_date (date | None): Last day included (local calendar day).
    """
    query: str = ""
    types: set[str] = set()
    actors: set[str] = set()
    start_date: date | None = None
    end_date: date | None = None


class AuditPage(BaseModel):
    items: list[CorrelatedAuditEvent] = []
    page: int = 1
    page_size: int
    total_pages: int = 1
    filtered_count: int = 0
    total_count: int = 0
    actors: list[str] = []
    stale: bool = False
