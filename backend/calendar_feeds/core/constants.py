"""
Calendar integration constants shared by the feed builders and token service.
"""

DEFAULT_TIMEZONE = "Asia/Tokyo"
DEFAULT_SCOPE = "selected_term"
DEFAULT_ASSIGNMENTS_RULE = "incomplete_only"

FEED_KINDS = ("courses", "assignments", "combined")

REQUIRED_KINDS_BY_MODE = {
    "separate": ("courses", "assignments"),
    "combined": ("combined",),
}

# period -> (start, end) local wall-clock times
PERIOD_TIMES = {
    1: ("09:00", "10:30"),
    2: ("10:45", "12:15"),
    3: ("13:10", "14:40"),
    4: ("14:55", "16:25"),
    5: ("16:40", "18:10"),
}

PERIOD_FROM_START = {start: period for period, (start, _end) in PERIOD_TIMES.items()}

DAY_TO_ICAL = {
    "Mon": "MO",
    "Tue": "TU",
    "Wed": "WE",
    "Thu": "TH",
    "Fri": "FR",
}

# Python weekday() numbering: Monday == 0
DAY_TO_WEEKDAY = {
    "Mon": 0,
    "Tue": 1,
    "Wed": 2,
    "Thu": 3,
    "Fri": 4,
}

JP_DAY_TO_EN = {
    "月": "Mon",
    "火": "Tue",
    "水": "Wed",
    "木": "Thu",
    "金": "Fri",
}

UID_DOMAIN = "ila-companion"
PRODUCT_ID = "-//ILA Companion//Calendar Integration//EN"

FEED_NAMES = {
    "courses": "ILA Companion - Courses",
    "assignments": "ILA Companion - Assignments",
    "combined": "ILA Companion - Courses and Assignments",
}

CORS_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]

GOOGLE_SUBSCRIBE_URL = "https://calendar.google.com/calendar/u/0/r"
