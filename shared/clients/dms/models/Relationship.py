from typing import Literal
from pydantic import BaseModel

from shared.clients.dms.models.Document import DocumentDetails

DEFAULT_LINK_TYPE = "related"


class RelatedDocument(BaseModel):
    """
    A peer document seen through a link edge.

    "outgoing" means the viewed document links to the peer ("links to"),
    "incoming" means the peer links to the viewed document ("linked from").
    """
    id: str
    title: str | None = None
    link_type: str = DEFAULT_LINK_TYPE
    direction: Literal["incoming", "outgoing"]
    version_number: int | None = None


class Relationships(BaseModel):
    """
    All edges around one document plus the members of its version group.
    """
    engine: str
    document_id: str
    incoming: list[RelatedDocument] = []
    outgoing: list[RelatedDocument] = []
    linked: list[RelatedDocument] = []
    versions: list[DocumentDetails] = []

    def has_outgoing(self, to_id: str, link_type: str) -> bool:
        return any(rel.id == to_id and rel.link_type == link_type for rel in self.outgoing)
