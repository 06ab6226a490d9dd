from datetime import datetime
from pydantic import BaseModel


class SignedDestination(BaseModel):
    """
    A short-lived, pre-authorized write target for a direct file transfer.
    """
    signed_url: str
    storage_key: str
    token: str | None = None
    expires_at: datetime | None = None
