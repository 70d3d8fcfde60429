"""
clearcase/parsers/times.py
Time-of-day extraction. Accepts "2:30pm", "2:30 P.M.", "14:30", "9am"
and always produces the display form "H:MM AM/PM" plus a 24h "HH:mm" value.

Only the first time-like substring is used. Callers that want the start of
the incident slice the text (e.g. to the Timeline block) first.
"""

import re
from typing import Optional, Tuple

from clearcase.models.record import ResolvedTime
from clearcase.text import normalize_newlines, to_str

# H:MM with optional meridiem, or bare hour with a required meridiem.
_TIME_RE = re.compile(
    r'(?<![\d:])(?P<h>\d{1,2})'
    r'(?:(?::(?P<m>\d{2}))(?:\s*(?P<mer1>[ap])\.?\s?m\b\.?)?'
    r'|\s*(?P<mer2>[ap])\.?\s?m\b\.?)'
    r'(?![\d:])',
    re.IGNORECASE,
)

_TIMELINE_START = re.compile(r'^\s*timeline\s*:', re.IGNORECASE | re.MULTILINE)
_NEXT_HEADER    = re.compile(
    r'^\s*(?:requests/responses|important quotes|additional details|witnesses|notes)\s*:',
    re.IGNORECASE | re.MULTILINE,
)


def _to_display(hour24: int, minute: int) -> str:
    hour12 = (hour24 + 11) % 12 + 1
    return f"{hour12}:{minute:02d} {'PM' if hour24 >= 12 else 'AM'}"


def _from_match(m: re.Match) -> Optional[ResolvedTime]:
    hour     = int(m.group('h'))
    minute   = int(m.group('m') or 0)
    meridiem = (m.group('mer1') or m.group('mer2') or '').lower()

    if minute > 59:
        return None
    if meridiem:
        if not 0 <= hour <= 12:
            return None
        if meridiem == 'p' and hour != 12:
            hour += 12
        elif meridiem == 'a' and hour == 12:
            hour = 0
    elif hour > 23:
        return None

    return ResolvedTime(display=_to_display(hour, minute), value=f"{hour:02d}:{minute:02d}")


def resolve_time(text: str) -> Optional[ResolvedTime]:
    """First valid time in text, or None. Idempotent on its own display output."""
    for m in _TIME_RE.finditer(to_str(text)):
        resolved = _from_match(m)
        if resolved is not None:
            return resolved
    return None


_LEAD_SEP = re.compile(r'^[\s\-–—:,]+')


def split_leading_time(text: str) -> Tuple[Optional[str], str]:
    """
    "9:00 AM - accused me" → ("9:00 AM", "accused me").
    Text that does not start with a valid time comes back as (None, text).
    """
    s = to_str(text).lstrip()
    m = _TIME_RE.match(s)
    if m:
        resolved = _from_match(m)
        if resolved is not None:
            return resolved.display, _LEAD_SEP.sub('', s[m.end():])
    return None, s


def timeline_block(raw_notes: str) -> Optional[str]:
    """Text from a 'Timeline:' header up to the next known header, if present."""
    text  = normalize_newlines(raw_notes)
    start = _TIMELINE_START.search(text)
    if not start:
        return None
    tail = text[start.start():]
    nxt  = _NEXT_HEADER.search(tail)
    return tail[:nxt.start()] if nxt else tail


def extract_first_time_from_notes(raw_notes: str) -> Optional[ResolvedTime]:
    """Prefer the first time inside the Timeline block; else the first anywhere."""
    if not raw_notes:
        return None
    block = timeline_block(raw_notes)
    if block:
        found = resolve_time(block)
        if found:
            return found
    return resolve_time(raw_notes)


def to_24h(display: str) -> str:
    """'2:30 PM' → '14:30'. Empty string when no time is found."""
    resolved = resolve_time(display)
    return resolved.value if resolved else ''
