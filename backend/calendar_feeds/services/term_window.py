"""
Academic term handling: term name normalization, term date windows, and
resolution of the term a user currently has selected.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calendar_feeds.models.profile import UserSettings

logger = logging.getLogger("ila.terms")


@dataclass(frozen=True)
class TermSelection:
    term: str
    year: int

    @property
    def label(self) -> str:
        return f"{normalize_term(self.term)}-{self.year}"


@dataclass(frozen=True)
class TermWindow:
    start: date
    end: date


def normalize_term(raw) -> str:
    """'2025/Fall', 'fall', '秋学期' -> 'Fall'; unknown values pass through."""
    value = str(raw or "").strip()
    if not value:
        return ""

    if "/" in value:
        return normalize_term(value.split("/")[-1])

    lower = value.lower()
    if "fall" in lower or "秋" in value:
        return "Fall"
    if "spring" in lower or "春" in value:
        return "Spring"
    return value


def parse_term_value(raw) -> Optional[TermSelection]:
    value = str(raw or "").strip()
    if not value:
        return None

    parts = "-".join(value.split()).split("-")
    if len(parts) < 2:
        return None

    term = normalize_term(parts[0])
    try:
        year = int(parts[1])
    except ValueError:
        return None

    if not term:
        return None
    return TermSelection(term=term, year=year)


def infer_current_term(now: Optional[datetime] = None) -> TermSelection:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)

    term = "Fall" if now.month >= 8 or now.month <= 2 else "Spring"
    return TermSelection(term=term, year=now.year)


def get_term_date_range(term: str, year: int) -> TermWindow:
    normalized = normalize_term(term)

    if normalized == "Spring":
        return TermWindow(start=date(year, 4, 1), end=date(year, 8, 15))
    if normalized == "Fall":
        return TermWindow(start=date(year, 9, 1), end=date(year + 1, 1, 31))
    return TermWindow(start=date(year, 1, 1), end=date(year, 12, 31))


def resolve_user_selected_term(
    db: Session,
    user_id: str,
    now: Optional[datetime] = None,
) -> TermSelection:
    try:
        row = db.query(UserSettings).filter(UserSettings.user_id == user_id).first()
    except SQLAlchemyError:
        logger.exception("failed loading current_term for user %s", user_id)
        db.rollback()
        return infer_current_term(now)

    parsed = parse_term_value(row.current_term if row else None)
    return parsed or infer_current_term(now)
