"""
Weekly recurring VEVENTs for the courses on a user's timetable.
"""
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, List, Optional

from icalendar import Event, vRecur

from calendar_feeds.core.constants import DAY_TO_WEEKDAY, DEFAULT_TIMEZONE, UID_DOMAIN
from calendar_feeds.services.schedule_parser import parse_course_schedule
from calendar_feeds.services.term_window import TermSelection, get_term_date_range

_LINE_BREAK = re.compile(r"\r\n|\r")


def sanitize_uid(value) -> str:
    return re.sub(r"[^a-zA-Z0-9_.-]", "-", str(value or ""))


def ics_text(value) -> str:
    """Text with every line break as a bare LF, which icalendar writes as \\n."""
    return _LINE_BREAK.sub("\n", str(value))


def first_date_for_weekday(start: date, day_code: str) -> Optional[date]:
    target = DAY_TO_WEEKDAY.get(day_code)
    if target is None:
        return None
    delta = (target - start.weekday() + 7) % 7
    return start + timedelta(days=delta)


def local_datetime(day: date, hhmm: str) -> datetime:
    """Naive wall-clock time; the TZID parameter ties it to the institution's zone."""
    hours, minutes = hhmm.split(":")
    return datetime.combine(day, time(int(hours), int(minutes)))


def until_for_term_end(end: date) -> datetime:
    # 14:59:59Z is 23:59:59 in UTC+9, so the last local day is kept
    return datetime.combine(end, time(14, 59, 59), tzinfo=timezone.utc)


def course_uid(course_code: str, selection: TermSelection, day_code: str, period: int) -> str:
    return (
        f"course-{sanitize_uid(course_code)}-{selection.year}-{selection.term.lower()}"
        f"-{day_code}-{period}@{UID_DOMAIN}"
    )


def _description(lines: Iterable[Optional[str]]) -> str:
    return "\n".join(line for line in lines if line and line.strip())


def build_course_events(courses, selection: TermSelection, dtstamp: datetime) -> List[Event]:
    """
    One VEVENT per course with a recognisable schedule. Courses whose slot
    cannot be parsed, or whose first meeting falls after the term, are skipped.
    """
    events: List[Event] = []
    window = get_term_date_range(selection.term, selection.year)
    until = until_for_term_end(window.end)
    tz_params = {"TZID": DEFAULT_TIMEZONE}

    for course in courses:
        parsed = parse_course_schedule(getattr(course, "time_slot", None))
        if not parsed:
            continue

        first_day = first_date_for_weekday(window.start, parsed.day_code)
        if first_day is None or first_day > window.end:
            continue

        code = course.course_code
        location = getattr(course, "location", None)
        description = _description([
            f"Course code: {code}",
            f"Type: {course.type}" if getattr(course, "type", None) else None,
            f"Professor: {course.professor}" if getattr(course, "professor", None) else None,
            f"Location: {location}" if location else None,
            f"Term: {selection.label}",
        ])

        event = Event()
        event.add("uid", course_uid(code, selection, parsed.day_code, parsed.period))
        event.add("dtstamp", dtstamp)
        event.add("summary", ics_text(f"Class: {course.title or code}"))
        if description:
            event.add("description", ics_text(description))
        if location:
            event.add("location", ics_text(location))
        event.add("dtstart", local_datetime(first_day, parsed.start_time), parameters=tz_params)
        event.add("dtend", local_datetime(first_day, parsed.end_time), parameters=tz_params)
        event.add("rrule", vRecur(freq="WEEKLY", byday=parsed.by_day, until=until))
        event.add("status", "CONFIRMED")
        event.add("transp", "OPAQUE")
        events.append(event)

    return events
