from pydantic import BaseModel, Field

from shared.clients.dms.models.Relationship import DEFAULT_LINK_TYPE


class LinkRequest(BaseModel):
    target_id: str
    link_type: str = DEFAULT_LINK_TYPE


class MoveVersionRequest(BaseModel):
    from_version: int = Field(ge=1)
    to_version: int = Field(ge=1)
