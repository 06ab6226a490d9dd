from pydantic import BaseModel


class OrgUser(BaseModel):
    """
    A member of the organization, used to recover display roles for audit actors.
    """
    engine: str
    id: str
    email: str | None = None
    display_name: str | None = None
    role: str | None = None
