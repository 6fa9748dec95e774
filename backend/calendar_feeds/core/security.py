import logging

from fastapi import Depends, Request

from calendar_feeds.core.exceptions import AuthenticationError
from calendar_feeds.services.identity_client import IdentityClient

logger = logging.getLogger("ila.auth")


def get_identity_client(request: Request) -> IdentityClient:
    """The process-wide identity client created at application startup."""
    return request.app.state.identity_client


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization") or ""
    if not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


async def get_current_user_id(
    request: Request,
    identity: IdentityClient = Depends(get_identity_client),
) -> str:
    token = _bearer_token(request)
    if not token:
        raise AuthenticationError()

    user_id = await identity.get_user_id(token)
    if not user_id:
        raise AuthenticationError()
    return user_id
