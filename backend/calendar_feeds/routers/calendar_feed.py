# calendar_feeds/routers/calendar_feed.py
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_feeds.core.config import get_settings
from calendar_feeds.core.constants import DEFAULT_TIMEZONE
from calendar_feeds.core.database import get_db
from calendar_feeds.core.exceptions import (
    CalendarIntegrationError,
    FeedNotFound,
    MethodNotAllowed,
    UpstreamStoreError,
)
from calendar_feeds.services.feed_data import fetch_assignments_for_term, fetch_courses_for_term
from calendar_feeds.services.feed_tokens import FeedTokenService
from calendar_feeds.services.ics_document import (
    build_ics_document,
    includes_assignments,
    includes_courses,
)
from calendar_feeds.services.term_window import resolve_user_selected_term

logger = logging.getLogger("ila.calendar_feed")

router = APIRouter(tags=["calendar-feed"])

settings = get_settings()

ALLOWED_METHODS = "GET, HEAD, OPTIONS"


def _plain(message: str, status_code: int, headers=None) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status_code, headers=headers)


def _render_feed(db: Session, token: str, download: bool) -> Response:
    try:
        tokens = FeedTokenService(db)
        token_row = tokens.lookup_active(token)
        if token_row is None:
            raise FeedNotFound()

        user_id = token_row.user_id
        feed_kind = token_row.feed_kind

        feed_settings = tokens.get_settings(user_id)
        selection = resolve_user_selected_term(db, user_id)

        courses = fetch_courses_for_term(db, user_id, selection) if includes_courses(feed_kind) else []
        assignments = (
            fetch_assignments_for_term(db, user_id, selection)
            if includes_assignments(feed_kind)
            else []
        )
    except SQLAlchemyError as exc:
        raise UpstreamStoreError() from exc

    body = build_ics_document(feed_kind, selection, courses, assignments)

    # Header values must stay latin-1; stored term labels can be arbitrary text
    headers = {
        "Cache-Control": f"private, max-age={settings.feed_cache_max_age}",
        "X-Calendar-Term": quote(selection.label, safe="-"),
        "X-Calendar-Timezone": feed_settings.timezone or DEFAULT_TIMEZONE,
    }
    if download:
        headers["Content-Disposition"] = f'attachment; filename="ila-calendar-{feed_kind}.ics"'

    return Response(
        content=body,
        media_type="text/calendar; charset=utf-8",
        headers=headers,
    )


@router.options("/calendar-feed")
def calendar_feed_options():
    return PlainTextResponse("ok")


@router.get("/calendar-feed")
def calendar_feed(
    token: str = "",
    download: str = "",
    db: Session = Depends(get_db),
):
    """
    Public iCalendar feed. The token in the query string is the only
    credential; unknown and revoked tokens get the same 404.
    """
    try:
        return _render_feed(db, token.strip(), download == "1")
    except CalendarIntegrationError as e:
        if e.status_code >= 500:
            logger.error("calendar-feed error: %s", e, exc_info=e.__cause__ or e)
        return _plain(e.public_message, e.status_code)


@router.api_route("/calendar-feed", methods=["POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def calendar_feed_wrong_method():
    error = MethodNotAllowed()
    return _plain(error.public_message, error.status_code, headers={"Allow": ALLOWED_METHODS})
