from typing import Literal
from pydantic import BaseModel

AuditEventType = Literal["login", "create", "edit", "delete", "move", "link", "unlink", "versionSet"]

AUDIT_EVENT_TYPES: tuple[str, ...] = ("login", "create", "edit", "delete", "move", "link", "unlink", "versionSet")


class AuditEvent(BaseModel):
    """
    An immutable audit record created by the backend for a mutating action.

    Attributes:
        timestamp_ms (int): Event time as epoch milliseconds.
        actor (str): Actor email, else actor user id, else "system".
        path (str | None): Folder path joined with "/" (move events).
    """
    id: str
    timestamp_ms: int
    actor: str
    type: AuditEventType
    doc_id: str | None = None
    title: str | None = None
    path: str | None = None
    note: str | None = None
    actor_email: str | None = None
    actor_role: str | None = None
