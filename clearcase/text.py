"""
clearcase/text.py
String coercion and cleanup primitives shared by every parser.
All functions accept anything and never raise.
"""

import re
from typing import Any

_WS_RE         = re.compile(r'\s+')
_TRAILING_PUNC = re.compile(r'[\s.,;:!?]+$')


def to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ''
    try:
        return str(value)
    except Exception:
        return ''


def normalize_newlines(value: Any) -> str:
    return to_str(value).replace('\r\n', '\n').replace('\r', '\n')


def clean_tabs(value: Any) -> str:
    return to_str(value).replace('\t', ' ')


def collapse_whitespace(value: Any) -> str:
    return _WS_RE.sub(' ', to_str(value)).strip()


def strip_trailing_punct(value: Any) -> str:
    return _TRAILING_PUNC.sub('', to_str(value).strip())


def prepare_notes(value: Any, max_len: int = 10000) -> str:
    """Newline/tab normalization plus the input size cap used by the UI."""
    return clean_tabs(normalize_newlines(value))[:max_len]
