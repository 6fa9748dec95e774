import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from calendar_feeds.core.config import get_settings
from calendar_feeds.core.database import get_db
from calendar_feeds.core.exceptions import MethodNotAllowed, ValidationError
from calendar_feeds.core.security import get_current_user_id
from calendar_feeds.schemas.integration import (
    DisconnectAllAction,
    EnsureFeedsAction,
    ErrorResponse,
    IntegrationState,
    RotateFeedsAction,
    integration_action_adapter,
)
from calendar_feeds.services.feed_tokens import FeedTokenService

logger = logging.getLogger("ila.calendar_integrations")

router = APIRouter(
    prefix="/calendar-integrations",
    tags=["calendar-integrations"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        405: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)

settings = get_settings()


def _base_url(request: Request) -> str:
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def _token_service(db: Session = Depends(get_db)) -> FeedTokenService:
    return FeedTokenService(
        db,
        token_bytes=settings.token_bytes,
        max_attempts=settings.token_max_attempts,
    )


def _parse_action(body: Any):
    payload = dict(body) if isinstance(body, dict) else {}
    payload["action"] = str(payload.get("action") or "").strip().lower()
    try:
        return integration_action_adapter.validate_python(payload)
    except PydanticValidationError:
        raise ValidationError("Unknown action") from None


@router.options("")
def calendar_integrations_options():
    return PlainTextResponse("ok")


@router.get("", response_model=IntegrationState)
def get_integration_state(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: FeedTokenService = Depends(_token_service),
):
    return service.build_state(user_id, _base_url(request))


@router.post("", response_model=IntegrationState)
async def run_integration_action(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: FeedTokenService = Depends(_token_service),
):
    """
    Dispatch on ``action``:
    - ensure_feeds   {feedMode}
    - rotate_feeds   {kinds?}
    - disconnect_all
    Every action answers with the refreshed state.
    """
    try:
        body = await request.json()
    except ValueError:
        body = {}
    action = _parse_action(body)

    if isinstance(action, EnsureFeedsAction):
        logger.info("ensure_feeds user=%s mode=%s", user_id, action.feed_mode)
        service.ensure_feeds(user_id, action.feed_mode)
    elif isinstance(action, RotateFeedsAction):
        logger.info("rotate_feeds user=%s kinds=%s", user_id, action.kinds)
        service.rotate_feeds(user_id, action.kinds)
    elif isinstance(action, DisconnectAllAction):
        logger.info("disconnect_all user=%s", user_id)
        service.disconnect_all(user_id)

    return service.build_state(user_id, _base_url(request))


@router.api_route("", methods=["PUT", "PATCH", "DELETE"], include_in_schema=False)
def calendar_integrations_wrong_method():
    raise MethodNotAllowed()
