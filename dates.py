# dates.py
# Dates are shown as M/D/YYYY (no zero padding) and read in local wall-clock time.

import re
from datetime import date, datetime

MDY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
YEAR_RE = re.compile(r"\d{4}")

# Written forms people actually type into the form
FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%A, %B %d, %Y",
    "%a, %d %b %Y",
    "%a %b %d %Y",
)


def format_mdy(d: date) -> str:
    return f"{d.month}/{d.day}/{d.year}"


def today_mdy() -> str:
    return format_mdy(date.today())


def _parse_loose(text: str):
    # Four-digit years only; strptime would read "19/8/25" as the year 19
    if not YEAR_RE.search(text):
        return None
    for fmt in FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def normalize_date(text: str) -> str | None:
    """Return ``text`` as M/D/YYYY, or None when it is not a real calendar date."""
    text = (text or "").strip()
    if not text:
        return None

    m = MDY_RE.match(text)
    if m:
        month, day, year = (int(g) for g in m.groups())
        try:
            parsed = date(year, month, day)
        except ValueError:
            return None
        # 2/30 must not roll over into March
        if (parsed.year, parsed.month, parsed.day) != (year, month, day):
            return None
        return format_mdy(parsed)

    m = ISO_RE.match(text)
    if m:
        year, month, day = (int(g) for g in m.groups())
        try:
            return format_mdy(date(year, month, day))
        except ValueError:
            return None

    parsed = _parse_loose(text)
    return format_mdy(parsed) if parsed else None
