"""
clearcase/parsers/dates.py
Fuzzy incident-date resolution: "6/8", "7/22/2024", "yesterday",
"last Friday", "July 22", "Jul 22, 2024" → YYYY-MM-DD.

The app logs past events. When the year is not written, a date that lands
strictly after the reference date is moved back one year.
Unrecognized text returns None; callers keep the original text for display.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Union

from clearcase.models.record import ResolvedDate
from clearcase.text import collapse_whitespace, to_str

DateLike = Union[date, datetime, None]

MONTHS = {
    'january': 1, 'jan': 1,
    'february': 2, 'feb': 2,
    'march': 3, 'mar': 3,
    'april': 4, 'apr': 4,
    'may': 5,
    'june': 6, 'jun': 6,
    'july': 7, 'jul': 7,
    'august': 8, 'aug': 8,
    'september': 9, 'sep': 9, 'sept': 9,
    'october': 10, 'oct': 10,
    'november': 11, 'nov': 11,
    'december': 12, 'dec': 12,
}

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

_MONTH_ALT = (
    r'january|february|march|april|may|june|july|august|september|october|november|december'
    r'|sept|jan|feb|mar|apr|jun|jul|aug|sep|oct|nov|dec'
)

_RE_TODAY     = re.compile(r'\btoday\b')
_RE_YESTERDAY = re.compile(r'\byesterday\b')
_RE_LAST_DAY  = re.compile(r'\blast\s+(' + '|'.join(WEEKDAYS) + r')\b')
_RE_ISO       = re.compile(r'\b(\d{4})-(\d{1,2})-(\d{1,2})\b')
_RE_FULL      = re.compile(r'\b(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4}|\d{2})\b')
_RE_SHORT     = re.compile(r'(?<![\d/])(\d{1,2})/(\d{1,2})(?![\d/])')
_RE_MONTH_DAY = re.compile(r'\b(' + _MONTH_ALT + r')\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b(?:,?\s*(\d{4}))?')
_RE_MONTH_YR  = re.compile(r'\b(' + _MONTH_ALT + r')\.?,?\s+(\d{4})\b')

# Ordered scrape used on raw notes; first hit wins.
DATE_TEXT_PATTERNS = [
    re.compile(r'\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b'),
    re.compile(r'\b\d{1,2}-\d{1,2}-\d{2,4}\b'),
    re.compile(r'\b(?:yesterday|today|last\s+(?:' + '|'.join(WEEKDAYS) + r'))\b', re.IGNORECASE),
    re.compile(
        r'\b(?:january|february|march|april|may|june|july|august|september|october|november|december)'
        r'\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s*\d{4})?\b',
        re.IGNORECASE,
    ),
    re.compile(
        r'\b(?:jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec)\.?\s+\d{1,2}(?:st|nd|rd|th)?(?:,?\s*\d{4})?\b',
        re.IGNORECASE,
    ),
]


def _reference_day(reference_date: DateLike) -> date:
    if reference_date is None:
        return date.today()
    if isinstance(reference_date, datetime):
        return reference_date.date()
    return reference_date


def _full_year(raw: str) -> int:
    year = int(raw)
    return year + 2000 if year < 100 else year


def _build(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _past_biased(month: int, day: int, ref: date) -> Optional[date]:
    candidate = _build(ref.year, month, day)
    if candidate is None:
        # Feb 29 in a non-leap current year can still be valid last year
        return _build(ref.year - 1, month, day)
    if candidate > ref:
        return _build(ref.year - 1, month, day)
    return candidate


def _relative(text: str, ref: date) -> Optional[date]:
    if _RE_YESTERDAY.search(text):
        return ref - timedelta(days=1)
    if _RE_TODAY.search(text):
        return ref
    m = _RE_LAST_DAY.search(text)
    if m:
        target    = WEEKDAYS.index(m.group(1))
        days_back = (ref.weekday() - target) % 7 or 7
        return ref - timedelta(days=days_back)
    return None


def resolve_date(text: str, reference_date: DateLike = None) -> Optional[ResolvedDate]:
    """
    Resolve a fuzzy date expression against reference_date (default: today).
    Returns None when nothing recognizable is present.
    """
    original = collapse_whitespace(to_str(text))
    if not original:
        return None
    lower = original.lower()
    ref   = _reference_day(reference_date)

    rel = _relative(lower, ref)
    if rel is not None:
        return ResolvedDate(rel.isoformat(), original, 'high')

    m = _RE_ISO.search(lower)
    if m:
        d = _build(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        return ResolvedDate(d.isoformat(), original, 'high') if d else None

    m = _RE_FULL.search(lower)
    if m:
        d = _build(_full_year(m.group(3)), int(m.group(1)), int(m.group(2)))
        return ResolvedDate(d.isoformat(), original, 'high') if d else None

    m = _RE_SHORT.search(lower)
    if m:
        d = _past_biased(int(m.group(1)), int(m.group(2)), ref)
        return ResolvedDate(d.isoformat(), original, 'medium') if d else None

    m = _RE_MONTH_DAY.search(lower)
    if m:
        month = MONTHS[m.group(1)]
        day   = int(m.group(2))
        if m.group(3):
            d = _build(int(m.group(3)), month, day)
        else:
            d = _past_biased(month, day, ref)
        return ResolvedDate(d.isoformat(), original, 'high') if d else None

    m = _RE_MONTH_YR.search(lower)
    if m:
        d = _build(int(m.group(2)), MONTHS[m.group(1)], 1)
        return ResolvedDate(d.isoformat(), original, 'low') if d else None

    return None


def extract_date_text(raw_notes: str) -> Optional[str]:
    """Return the first date-looking substring of raw notes, verbatim."""
    text = to_str(raw_notes)
    if not text:
        return None
    for pattern in DATE_TEXT_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(0)
    return None


def format_display_date(iso_date: str) -> str:
    """'2024-07-22' → 'Jul 22, 2024'. Unparseable input is returned as-is."""
    try:
        d = date.fromisoformat(to_str(iso_date)[:10])
    except ValueError:
        return to_str(iso_date)
    return f"{d.strftime('%b')} {d.day}, {d.year}"
