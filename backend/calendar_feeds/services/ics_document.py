"""
Assembles a complete VCALENDAR document for one feed kind.

Building is pure: everything it needs is passed in, nothing is written.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from icalendar import Calendar, Timezone, TimezoneStandard

from calendar_feeds.core.constants import DEFAULT_TIMEZONE, FEED_NAMES, PRODUCT_ID
from calendar_feeds.services.assignment_events import build_assignment_events
from calendar_feeds.services.course_events import build_course_events
from calendar_feeds.services.term_window import TermSelection

UTC_OFFSET = timedelta(hours=9)


def includes_courses(feed_kind: str) -> bool:
    return feed_kind in ("courses", "combined")


def includes_assignments(feed_kind: str) -> bool:
    return feed_kind in ("assignments", "combined")


def build_timezone() -> Timezone:
    """Fixed UTC+9 with no daylight-saving component."""
    standard = TimezoneStandard()
    standard.add("dtstart", datetime(1970, 1, 1))
    standard.add("tzoffsetfrom", UTC_OFFSET)
    standard.add("tzoffsetto", UTC_OFFSET)
    standard.add("tzname", "JST")

    tz = Timezone()
    tz.add("tzid", DEFAULT_TIMEZONE)
    tz.add_component(standard)
    return tz


def build_calendar(
    feed_kind: str,
    selection: TermSelection,
    courses: Sequence = (),
    assignments: Sequence = (),
    now: Optional[datetime] = None,
) -> Calendar:
    dtstamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)

    cal = Calendar()
    cal.add("prodid", PRODUCT_ID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", FEED_NAMES[feed_kind])
    cal.add("x-wr-timezone", DEFAULT_TIMEZONE)
    cal.add_component(build_timezone())

    events = []
    if includes_courses(feed_kind):
        events.extend(build_course_events(courses, selection, dtstamp))
    if includes_assignments(feed_kind):
        events.extend(build_assignment_events(assignments, dtstamp))
    for event in events:
        cal.add_component(event)

    return cal


def build_ics_document(
    feed_kind: str,
    selection: TermSelection,
    courses: Sequence = (),
    assignments: Sequence = (),
    now: Optional[datetime] = None,
) -> str:
    """CRLF-terminated, 75-octet-folded iCalendar text."""
    return build_calendar(feed_kind, selection, courses, assignments, now).to_ical().decode("utf-8")
