import pytest

from calendar_feeds.services.schedule_parser import ParsedSchedule, parse_course_schedule


def test_compact_japanese_form():
    parsed = parse_course_schedule("(月)3(講時)")
    assert parsed == ParsedSchedule(day_code="Mon", period=3, by_day="MO")
    assert parsed.start_time == "13:10"
    assert parsed.end_time == "14:40"


@pytest.mark.parametrize(
    "raw, day, period",
    [
        ("木4", "Thu", 4),
        ("金曜日1", "Fri", 1),
        ("(水)5", "Wed", 5),
        ("  (火)2(講時)  ", "Tue", 2),
    ],
)
def test_compact_form_variants(raw, day, period):
    parsed = parse_course_schedule(raw)
    assert parsed is not None
    assert (parsed.day_code, parsed.period) == (day, period)


@pytest.mark.parametrize("raw", ["(土)2(講時)", "(日)1", "(月)6(講時)", "(月)0"])
def test_compact_form_unsupported_values(raw):
    assert parse_course_schedule(raw) is None


def test_spelled_out_form():
    parsed = parse_course_schedule("Thu 14:55 - 16:25")
    assert parsed == ParsedSchedule(day_code="Thu", period=4, by_day="TH")


def test_spelled_out_form_without_spaces_around_dash():
    parsed = parse_course_schedule("Mon 09:00-10:30")
    assert parsed is not None
    assert parsed.period == 1


def test_weekend_is_skipped():
    assert parse_course_schedule("Sat 10:00 - 11:30") is None
    assert parse_course_schedule("Sun 09:00 - 10:30") is None


def test_near_miss_start_time_is_not_matched():
    assert parse_course_schedule("Thu 14:50 - 16:20") is None


@pytest.mark.parametrize("raw", [None, "", "   ", "TBA", "Thursday 14:55 - 16:25", "Thu 2:55 - 4:25"])
def test_unrecognised_input(raw):
    assert parse_course_schedule(raw) is None
