from pydantic import BaseModel

ELEVATED_ROLES = {"systemadmin", "orgadmin", "admin"}


class OrgContext(BaseModel):
    """
    Explicit organization scope passed to every lifecycle call.

    Attributes:
        org_id (str): The organization all backend paths are scoped to.
        actor_email (str | None): Email of the acting user, used for audit correlation.
        actor_role (str | None): Role of the acting user (e.g. "systemAdmin").
    """

    org_id: str
    actor_email: str | None = None
    actor_role: str | None = None

    @property
    def is_elevated(self) -> bool:
        return (self.actor_role or "").strip().lower() in ELEVATED_ROLES
