"""
Course schedule parsing.

Catalog rows describe their weekly slot in one of two forms:

- the compact Japanese form, e.g. ``(月)3(講時)`` or ``木曜日4``
- the spelled-out form, e.g. ``Thu 14:55 - 16:25``

Anything that cannot be mapped to a weekday (Mon-Fri) and one of the five
periods yields ``None``. Callers drop those rows from the feed; a bad
catalog row is never an error.
"""
import re
from dataclasses import dataclass
from typing import Optional

from calendar_feeds.core.constants import (
    DAY_TO_ICAL,
    JP_DAY_TO_EN,
    PERIOD_FROM_START,
    PERIOD_TIMES,
)

# Weekend glyphs are matched on purpose so they resolve to None, not to a
# neighbouring token further along the string.
_JP_PATTERN = re.compile(r"\(?([月火水木金土日])(?:曜日)?\)?(\d{1,2})\(?(?:講時)?\)?")
_EN_PATTERN = re.compile(
    r"^(Mon|Tue|Wed|Thu|Fri|Sat|Sun)\s+(\d{2}):(\d{2})\s*-\s*(\d{2}):(\d{2})$"
)


@dataclass(frozen=True)
class ParsedSchedule:
    day_code: str  # Mon..Fri
    period: int  # 1..5
    by_day: str  # MO..FR

    @property
    def start_time(self) -> str:
        return PERIOD_TIMES[self.period][0]

    @property
    def end_time(self) -> str:
        return PERIOD_TIMES[self.period][1]


def _build(day_code: Optional[str], period: Optional[int]) -> Optional[ParsedSchedule]:
    if not day_code or day_code not in DAY_TO_ICAL:
        return None
    if period not in PERIOD_TIMES:
        return None
    return ParsedSchedule(day_code=day_code, period=period, by_day=DAY_TO_ICAL[day_code])


def parse_course_schedule(raw) -> Optional[ParsedSchedule]:
    time_slot = str(raw or "").strip()
    if not time_slot:
        return None

    jp_match = _JP_PATTERN.search(time_slot)
    if jp_match:
        return _build(JP_DAY_TO_EN.get(jp_match.group(1)), int(jp_match.group(2)))

    en_match = _EN_PATTERN.match(time_slot)
    if not en_match:
        return None

    start = f"{en_match.group(2)}:{en_match.group(3)}"
    # Exact start-time match only; a near-miss is not bound to a period
    return _build(en_match.group(1), PERIOD_FROM_START.get(start))
