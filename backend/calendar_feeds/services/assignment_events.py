"""
All-day "Due:" VEVENTs for a user's outstanding assignments.
"""
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from icalendar import Event

from calendar_feeds.core.constants import UID_DOMAIN
from calendar_feeds.services.course_events import ics_text, sanitize_uid
from calendar_feeds.services.term_window import TermSelection, normalize_term

UNTITLED = "Untitled assignment"


def _parse_year(raw) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def due_day(raw) -> Optional[date]:
    """Calendar day (UTC) of a due date given as date, datetime or ISO string."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        if raw.tzinfo is not None:
            raw = raw.astimezone(timezone.utc)
        return raw.date()
    if isinstance(raw, date):
        return raw

    value = str(raw).strip()
    if not value:
        return None
    try:
        return due_day(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


def matches_term(assignment, selection: TermSelection) -> bool:
    year = _parse_year(getattr(assignment, "course_year", None))
    term = normalize_term(getattr(assignment, "course_term", None))

    # Untagged assignments show up in every term's feed
    if year is None or not term:
        return True
    return year == selection.year and term == normalize_term(selection.term)


def filter_assignments_for_term(assignments, selection: TermSelection) -> list:
    return [
        a for a in assignments
        if a.status != "completed"
        and a.due_date is not None
        and matches_term(a, selection)
    ]


def assignment_uid(assignment_id) -> str:
    return f"assignment-{sanitize_uid(assignment_id)}@{UID_DOMAIN}"


def build_assignment_events(assignments, dtstamp: datetime) -> List[Event]:
    events: List[Event] = []

    for assignment in assignments:
        if assignment.status == "completed":
            continue
        day = due_day(assignment.due_date)
        if day is None:
            continue

        title = str(assignment.title or "").strip() or UNTITLED
        course_label = (
            getattr(assignment, "course_tag_name", None)
            or getattr(assignment, "course_code", None)
        )
        instructions = getattr(assignment, "instructions", None)

        description = "\n".join(
            line for line in [
                f"Course: {course_label}" if course_label else None,
                f"Instructions: {instructions}" if instructions and instructions.strip() else None,
            ]
            if line
        )

        event = Event()
        event.add("uid", assignment_uid(assignment.id))
        event.add("dtstamp", dtstamp)
        event.add("summary", ics_text(f"Due: {title}"))
        if description:
            event.add("description", ics_text(description))
        # date values are written with VALUE=DATE
        event.add("dtstart", day)
        event.add("dtend", day + timedelta(days=1))
        event.add("status", "CONFIRMED")
        event.add("transp", "TRANSPARENT")
        events.append(event)

    return events
