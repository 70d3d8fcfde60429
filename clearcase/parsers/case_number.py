"""
clearcase/parsers/case_number.py
Case / reference number extraction, storage normalization and search matching.
"""

import re
from typing import Optional

from clearcase.models.record import CaseChip
from clearcase.text import to_str

_BULLET = r'^[ \t]*(?:[-*•>][ \t]*)?'
_LABEL  = r'\s*(?:#|no\b\.?|number\b|id\b)?\s*[:#]?\s*'
_VALUE  = r'([A-Za-z0-9][A-Za-z0-9\-/ ]{0,49})'

# Ordered: labels at line start beat the inline fallback ("in case ..." is skipped).
CASE_PATTERNS = [
    re.compile(_BULLET + r'case\b' + _LABEL + _VALUE, re.IGNORECASE | re.MULTILINE),
    re.compile(_BULLET + r'ref(?:erence)?\b' + _LABEL + _VALUE, re.IGNORECASE | re.MULTILINE),
    re.compile(_BULLET + r'(?:ticket|report)\b' + _LABEL + _VALUE, re.IGNORECASE | re.MULTILINE),
    re.compile(r'(?<!\bin\s)\bcase\b' + _LABEL + _VALUE, re.IGNORECASE),
]

_NON_VALUE_CH   = re.compile(r'[^A-Za-z0-9\-/ ]')
_MULTI_SPACE    = re.compile(r'\s{2,}')
_DIGIT          = re.compile(r'\d')
_LEADING_LABEL  = re.compile(r'^\s*case\b\s*(?:#|no\b\.?|number\b|id\b)?\s*[:#]?\s*', re.IGNORECASE)
_LEADING_HASH   = re.compile(r'^\s*#\s*')
_TRAILING_PUNCT = re.compile(r'[ ,.;:]+$')
_SEARCH_STRIP   = re.compile(r'[^a-z0-9]')


def _clean_value(raw: str) -> Optional[str]:
    cleaned = _MULTI_SPACE.sub(' ', _NON_VALUE_CH.sub('', raw)).strip()
    tokens  = cleaned.split(' ')
    # "1234 was opened" → "1234"
    while tokens and not _DIGIT.search(tokens[-1]):
        tokens.pop()
    value = ' '.join(tokens).strip(' -/')
    return value if _DIGIT.search(value) else None


def extract_case_number(text: str) -> Optional[str]:
    """Bare case value from free text, or None. A value must contain a digit."""
    s = to_str(text)
    if not s:
        return None
    for pattern in CASE_PATTERNS:
        for m in pattern.finditer(s):
            value = _clean_value(m.group(1))
            if value:
                return value
    return None


def normalize_case_value(raw: Optional[str]) -> str:
    """Strip a leading "Case #"/"Case No."/"#" label and trailing punctuation."""
    if not raw:
        return ''
    s = _LEADING_LABEL.sub('', to_str(raw))
    s = _LEADING_HASH.sub('', s)
    return _TRAILING_PUNCT.sub('', s).strip()


def case_chip_text(raw: Optional[str]) -> CaseChip:
    bare = normalize_case_value(raw)
    return CaseChip(bare=bare, prefixed=f"Case {bare}" if bare else '')


def normalize_for_search(text: str) -> str:
    return _SEARCH_STRIP.sub('', to_str(text).lower())


def matches_case_number(case_number: Optional[str], query: str) -> bool:
    """Substring match, first case-insensitive, then ignoring punctuation and spaces."""
    if not case_number or not query:
        return False
    if query.lower() in case_number.lower():
        return True
    q_norm = normalize_for_search(query)
    return bool(q_norm) and q_norm in normalize_for_search(case_number)
