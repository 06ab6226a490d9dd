from fastapi import Header, HTTPException, Request

from shared.models.context import OrgContext


async def verify_api_key(request: Request, x_api_key: str | None = Header(None)) -> None:
    """Verify the X-API-Key header against the configured API key.

    Args:
        request (Request): The FastAPI request object (provides app.state).
        x_api_key (str | None): The value of the X-API-Key header.

    Raises:
        HTTPException: 401 if the key is missing or does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("APP_API_KEY")
    if not x_api_key or x_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


async def get_org_context(
    org_id: str,
    x_actor_email: str | None = Header(None),
    x_actor_role: str | None = Header(None),
) -> OrgContext:
    """Build the organization scope of a request from the path and the actor headers."""
    return OrgContext(org_id=org_id, actor_email=x_actor_email, actor_role=x_actor_role)
