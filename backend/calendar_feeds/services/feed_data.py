"""
Reads the catalog and assignment rows a feed needs.

Both tables belong to the main application. A failed read is logged and
treated as "no rows" so one bad query never takes the whole feed down.
"""
import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_feeds.models.assignment import Assignment
from calendar_feeds.models.course import Course
from calendar_feeds.models.profile import Profile
from calendar_feeds.services.assignment_events import filter_assignments_for_term
from calendar_feeds.services.term_window import TermSelection, normalize_term

logger = logging.getLogger("ila.feed_data")


def _selection_year(raw):
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


def selected_course_codes(courses_selection, selection: TermSelection) -> List[str]:
    """Codes the user picked for the given term, de-duplicated in order."""
    if not isinstance(courses_selection, list):
        return []

    term = normalize_term(selection.term)
    codes: List[str] = []
    for entry in courses_selection:
        if not isinstance(entry, dict):
            continue
        code = str(entry.get("code") or "").strip()
        entry_year = _selection_year(entry.get("year"))
        entry_term = normalize_term(entry.get("term"))

        if not code or entry_year != selection.year:
            continue
        if entry_term and entry_term != term:
            continue
        if code not in codes:
            codes.append(code)
    return codes


def fetch_courses_for_term(db: Session, user_id: str, selection: TermSelection) -> List[Course]:
    try:
        profile = db.query(Profile).filter(Profile.id == user_id).first()
    except SQLAlchemyError:
        logger.exception("failed loading courses_selection for user %s", user_id)
        db.rollback()
        return []

    codes = selected_course_codes(profile.courses_selection if profile else None, selection)
    if not codes:
        return []

    try:
        return (
            db.query(Course)
            .filter(
                Course.academic_year == selection.year,
                Course.term == normalize_term(selection.term),
                Course.course_code.in_(codes),
            )
            .order_by(Course.course_code)
            .all()
        )
    except SQLAlchemyError:
        logger.exception("failed loading courses for calendar feed (user %s)", user_id)
        db.rollback()
        return []


def fetch_assignments_for_term(db: Session, user_id: str, selection: TermSelection) -> List[Assignment]:
    try:
        rows = (
            db.query(Assignment)
            .filter(
                Assignment.user_id == user_id,
                Assignment.due_date.isnot(None),
            )
            .order_by(Assignment.due_date.asc())
            .all()
        )
    except SQLAlchemyError:
        logger.exception("failed loading assignments for calendar feed (user %s)", user_id)
        db.rollback()
        return []

    return filter_assignments_for_term(rows, selection)
