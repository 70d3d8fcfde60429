"""
clearcase/parsers/structured.py
Local structured parse of raw incident notes.

Notes are split into sections on header lines (Timeline:, Requests/Responses:,
Important Quotes:, Additional Details:, Witnesses:, Notes:). Text before the
first header is the narrative. Timeline lines become TimelineEvents; narrative
and detail lines are classified into requests, policy, evidence or plain notes.

Output is deterministic for a given input. The only clock dependence is the
date resolver's year guess, which this module does not call (date stays raw).
"""

import re
from typing import Dict, List, Optional, Tuple

from clearcase.detectors.category_detector import infer_category
from clearcase.models.record import (
    EvidenceTest,
    RequestResponse,
    StructuredIncident,
    TimelineEvent,
    WhoGroups,
)
from clearcase.parsers.case_number import extract_case_number
from clearcase.parsers.dates import extract_date_text
from clearcase.parsers.people import classify_role, parse_names
from clearcase.parsers.times import split_leading_time
from clearcase.text import collapse_whitespace, prepare_notes, strip_trailing_punct, to_str

# ── SECTION HEADERS ──────────────────────────────────────────

SECTION_HEADERS: Dict[str, str] = {
    'timeline':           'timeline',
    'requests/responses': 'requests',
    'important quotes':   'quotes',
    'additional details': 'details',
    'witnesses':          'witnesses',
    'notes':              'notes',
}

_HEADER_ALT  = '|'.join(re.escape(h) for h in SECTION_HEADERS)
_HEADER_LINE = re.compile(r'^\s*(' + _HEADER_ALT + r')\s*:\s*(.*)$', re.IGNORECASE)
# "... Case #4521. Timeline: 9:00 AM" → header moved to its own line
_INLINE_HEADER = re.compile(r'(?<=[.!?])[ \t]+(?=(?:' + _HEADER_ALT + r')\s*:)', re.IGNORECASE)

# Narrative label lines consumed as fields rather than notes.
_LABEL_LINE = re.compile(
    r'^\s*(who|people|participants|where|location|outcome|next steps?|follow[- ]up|date|when)\s*:\s*(.*)$',
    re.IGNORECASE,
)

# ── LINE PATTERNS ────────────────────────────────────────────

_BULLET       = re.compile(r'^\s*(?:[-*•>]|\d+[.)])\s+')
_QUOTE_RE     = re.compile(r'["\u201c]([^"\u201c\u201d]{1,200})["\u201d]')
_TIME_CLAUSE  = re.compile(
    r'(?<=[.;!?])\s+(?=\d{1,2}(?::\d{2}|\s*[ap]\.?\s?m\b))',
    re.IGNORECASE,
)
_BY_WHOM      = re.compile(r'\bby\s+((?:[A-Z][a-z]+)(?:\s+[A-Z][a-z]+)?)')
_APPROVED     = re.compile(r'\b(?:approved|granted|allowed)\b', re.IGNORECASE)
_DENIED       = re.compile(r'\b(?:denied|refused|rejected)\b', re.IGNORECASE)
_REQUEST      = re.compile(r'\brequest', re.IGNORECASE)
_POLICY       = re.compile(r'\b(?:policy|policies|procedure)', re.IGNORECASE)
_EVIDENCE     = re.compile(r'\b(test|lab|sample)', re.IGNORECASE)
_UNCLEAR      = re.compile(r'\b(?:confused|unclear)\b', re.IGNORECASE)

MIN_NOTE_LEN = 10

# ── PEOPLE / PLACE PATTERNS ──────────────────────────────────

_NAME = r'([A-Z][a-z]+(?:\s+[A-Z][a-z]+)?)'

_ROLE_NAME = re.compile(
    r'(?i:\b(?:my|the|our|a|his|her)\s+)?'
    r'(?i:\b(security\s+guard|security\s+officer|union\s+steward|union\s+rep(?:resentative)?'
    r'|manager|supervisor|boss|director|lead|steward|security|guard|officer))'
    r',?\s+' + _NAME
)
_ACCUSER_RE = re.compile(_NAME + r'\s+(?i:(?:falsely\s+)?accused)\b')
_ACCUSED_BY = re.compile(r'(?i:accused\s+by)\s+' + _NAME)
_ACCUSED_RE = re.compile(r'(?i:\baccused)\s+' + _NAME)

_NAME_STOPWORDS = {
    'I', 'Me', 'My', 'He', 'She', 'They', 'We', 'It', 'The', 'A', 'An', 'On', 'At',
    'In', 'Then', 'Later', 'After', 'Before', 'When', 'And', 'But', 'So', 'Also',
    'Today', 'Yesterday', 'Case', 'Timeline', 'Witnesses', 'Notes', 'Who', 'Where',
    'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday',
    'January', 'February', 'March', 'April', 'May', 'June', 'July', 'August',
    'September', 'October', 'November', 'December',
}

_WHERE_PREP = re.compile(
    r'\b(?:at|in|inside|outside|near)\s+the\s+([A-Za-z][A-Za-z0-9\- ]{1,40}?)'
    r'(?=\s*(?:[.,;!?\n]|$)|\s+(?:and|with|when|while|during|around|on|at|in|for|because)\b)',
    re.IGNORECASE,
)
_NOT_PLACES = {
    'morning', 'afternoon', 'evening', 'night', 'end', 'past', 'future',
    'meantime', 'middle', 'moment', 'meeting', 'beginning', 'day', 'week',
}


# ── HELPERS ──────────────────────────────────────────────────

def extract_quotes(text: str) -> List[str]:
    """Quoted substrings in textual order, de-duplicated."""
    out: List[str] = []
    for m in _QUOTE_RE.finditer(to_str(text)):
        q = m.group(1).strip()
        if q and q not in out:
            out.append(q)
    return out


def _split_sections(text: str) -> Tuple[List[str], Dict[str, List[str]], bool]:
    narrative: List[str] = []
    sections: Dict[str, List[str]] = {key: [] for key in SECTION_HEADERS.values()}
    seen_timeline = False
    current: Optional[str] = None

    for line in text.split('\n'):
        m = _HEADER_LINE.match(line)
        if m:
            current = SECTION_HEADERS[m.group(1).lower()]
            if current == 'timeline':
                seen_timeline = True
            rest = m.group(2).strip()
            if rest:
                sections[current].append(rest)
            continue
        if not line.strip():
            continue
        if current is None:
            narrative.append(line.strip())
        else:
            sections[current].append(_BULLET.sub('', line.strip()))

    return narrative, sections, seen_timeline


def _timeline_events(line: str) -> List[TimelineEvent]:
    events: List[TimelineEvent] = []
    for clause in _TIME_CLAUSE.split(_BULLET.sub('', line)):
        time, event = split_leading_time(clause)
        event = event.strip()
        if not event:
            continue
        events.append(TimelineEvent(event=event, time=time, quotes=extract_quotes(event)))
    return events


def _request_response(line: str) -> RequestResponse:
    if _APPROVED.search(line):
        response = 'approved'
    elif _DENIED.search(line):
        response = 'denied'
    else:
        response = 'unknown'
    by = _BY_WHOM.search(line)
    return RequestResponse(request=line, response=response, by_whom=by.group(1) if by else None)


def _evidence(line: str) -> EvidenceTest:
    lower = line.lower()
    if 'lab' in lower and 'test' in lower:
        kind = 'lab test'
    else:
        kind = _EVIDENCE.search(line).group(1).lower()
    return EvidenceTest(
        type   = kind,
        detail = line,
        status = 'unclear' if _UNCLEAR.search(line) else 'performed',
    )


def _classify_line(line: str, out: StructuredIncident) -> None:
    """Route one narrative/detail line into requests, policy, evidence or notes."""
    if _REQUEST.search(line) and (_APPROVED.search(line) or _DENIED.search(line)):
        out.requests_and_responses.append(_request_response(line))
    elif _POLICY.search(line):
        out.policy_or_procedure.append(line)
    elif _EVIDENCE.search(line):
        out.evidence_or_tests.append(_evidence(line))
    elif len(line) >= MIN_NOTE_LEN:
        out.notes.append(line)


def _valid_name(name: str) -> bool:
    return bool(name) and name.split()[0] not in _NAME_STOPWORDS


def _extract_who(text: str, who_lines: List[str]) -> WhoGroups:
    """
    Each name lands in one bucket. Precedence: role phrases ("my manager
    Jane Doe"), then role words on a Who: line, then accusers, then accused,
    then the remaining Who: names as others.
    """
    assigned: Dict[str, str] = {}
    order: List[str] = []

    def _assign(name: str, bucket: str) -> None:
        name = strip_trailing_punct(name)
        if not _valid_name(name) or name in assigned:
            return
        # "Union Steward Bob Lee" after "Bob Lee" from a role phrase
        if any(name.endswith(' ' + known) for known in assigned):
            return
        assigned[name] = bucket
        order.append(name)

    for m in _ROLE_NAME.finditer(text):
        _assign(m.group(2), classify_role(m.group(1)))

    listed = parse_names(who_lines)
    for name in listed:
        bucket = classify_role(name)
        if bucket != 'others':
            _assign(name, bucket)

    for m in _ACCUSER_RE.finditer(text):
        _assign(m.group(1), 'accusers')
    for m in _ACCUSED_BY.finditer(text):
        _assign(m.group(1), 'accusers')
    for m in _ACCUSED_RE.finditer(text):
        if m.group(1) != 'By':
            _assign(m.group(1), 'accused')

    for name in listed:
        _assign(name, 'others')

    groups = WhoGroups()
    for name in order:
        getattr(groups, assigned[name]).append(name)
    return groups


def _extract_where(text: str, labelled: Optional[str]) -> Optional[str]:
    if labelled:
        return strip_trailing_punct(labelled) or None
    for m in _WHERE_PREP.finditer(text):
        place = collapse_whitespace(m.group(1))
        if place.lower() not in _NOT_PLACES:
            return place
    return None


# ── PUBLIC ───────────────────────────────────────────────────

def parse_notes_to_structured(text) -> StructuredIncident:
    """
    Parse raw notes into a StructuredIncident. Accepts a string or a
    {"text": ...} dict. Never raises on content; empty input gives an
    empty incident.
    """
    if isinstance(text, dict):
        text = text.get('text')
    raw = prepare_notes(text).strip()
    out = StructuredIncident()
    if not raw:
        return out

    body = _INLINE_HEADER.sub('\n', raw)
    narrative, sections, has_timeline = _split_sections(body)

    labels: Dict[str, str] = {}
    who_lines: List[str] = []
    story: List[str] = []
    for line in narrative:
        m = _LABEL_LINE.match(line)
        if m:
            label = m.group(1).lower()
            value = m.group(2).strip()
            if label in ('who', 'people', 'participants'):
                who_lines.append(value)
            elif label == 'location':
                labels.setdefault('where', value)
            elif label.startswith(('outcome', 'next', 'follow')):
                labels.setdefault('outcome', value)
            else:
                labels.setdefault(label, value)
            continue
        story.append(line)

    # Timeline
    if has_timeline:
        for line in sections['timeline']:
            out.timeline.extend(_timeline_events(line))
        for line in story:
            _classify_line(line, out)
    else:
        for line in story:
            lead_time, _ = split_leading_time(_BULLET.sub('', line))
            if lead_time:
                out.timeline.extend(_timeline_events(line))
            else:
                _classify_line(line, out)

    for line in sections['requests']:
        out.requests_and_responses.append(_request_response(line))
    for line in sections['details'] + sections['notes']:
        _classify_line(line, out)

    out.witnesses = parse_names(sections['witnesses'])

    quotes: List[str] = []
    for line in sections['quotes']:
        q = line.strip().strip('"\u201c\u201d').strip()
        if q and q not in quotes:
            quotes.append(q)
    for q in extract_quotes(body):
        if q not in quotes:
            quotes.append(q)
    out.quotes = quotes

    narrative_text = ' '.join(story)
    if narrative_text:
        out.what_happened = collapse_whitespace(narrative_text)
    else:
        out.what_happened = ' '.join(e.event for e in out.timeline)

    out.date            = labels.get('date') or labels.get('when') or extract_date_text(raw)
    out.category        = infer_category(raw)
    out.who             = _extract_who(body, who_lines)
    out.where           = _extract_where(narrative_text or body, labels.get('where'))
    out.outcome_or_next = labels.get('outcome') or None
    out.case_number     = extract_case_number(raw)
    return out
