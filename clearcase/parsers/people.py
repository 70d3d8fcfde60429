"""
clearcase/parsers/people.py
Normalizes the free-form "who" field into a list of display names and
partitions names into role buckets.

Accepted shapes: None, "Alice, Bob and Carol", ["Alice", "Bob"],
[{"name": "Alice, Bob"}], {"name": "Alice"}, {"a": "Alice", "b": "Bob"}.
Anything else yields [] and a warning, never an exception.
"""

import logging
import re
from typing import Any, Dict, Iterable, List

from clearcase.models.record import WhoGroups
from clearcase.text import strip_trailing_punct, to_str

logger = logging.getLogger(__name__)

_SPLIT_RE  = re.compile(r'\s*(?:[,;]|\band\b)\s*', re.IGNORECASE)
_OTHERS_RE = re.compile(r'^others?\s*:\s*', re.IGNORECASE)

# Bucket precedence: the first bucket whose keyword appears in the name wins.
# "Security Manager Jane" therefore lands in managers.
ROLE_KEYWORDS: List[tuple] = [
    ('managers',       ['manager', 'supervisor', 'boss', 'director', 'lead']),
    ('union_stewards', ['steward', 'union']),
    ('security',       ['security', 'guard', 'officer']),
]


def _split_string(text: str) -> List[str]:
    parts = []
    for chunk in _SPLIT_RE.split(text):
        name = strip_trailing_punct(_OTHERS_RE.sub('', chunk.strip()))
        if name:
            parts.append(name)
    return parts


def _dedupe(names: Iterable[str]) -> List[str]:
    seen: set = set()
    out: List[str] = []
    for n in names:
        if n not in seen:
            seen.add(n)
            out.append(n)
    return out


def parse_names(value: Any) -> List[str]:
    """Split, trim and de-duplicate names. First-seen order is kept."""
    if value is None:
        return []

    if isinstance(value, str):
        return _dedupe(_split_string(value))

    if isinstance(value, (list, tuple)):
        names: List[str] = []
        for item in value:
            if isinstance(item, str):
                names.extend(_split_string(item))
            elif isinstance(item, dict):
                names.extend(_split_string(to_str(item.get('name'))))
            elif item is not None:
                logger.warning(f"parse_names: skipped list item of type {type(item).__name__}")
        return _dedupe(names)

    if isinstance(value, dict):
        if 'name' in value:
            return _dedupe(_split_string(to_str(value.get('name'))))
        primitives = [
            to_str(v) for v in value.values()
            if isinstance(v, (str, int, float)) and not isinstance(v, bool)
        ]
        return _dedupe(_split_string(', '.join(primitives)))

    logger.warning(f"parse_names: unsupported input type {type(value).__name__}")
    return []


def _capitalize(name: str) -> str:
    return ' '.join(w[:1].upper() + w[1:].lower() for w in name.split())


def format_who_list(names: Any) -> List[str]:
    """Display form: per-word capitalization, de-duplicated after casing."""
    cleaned = [_capitalize(n) for n in parse_names(names)]
    return _dedupe(n for n in cleaned if n)


def format_who_text(names: Any) -> str:
    return ', '.join(format_who_list(names))


def classify_role(name: str) -> str:
    lower = to_str(name).lower()
    for bucket, keywords in ROLE_KEYWORDS:
        if any(kw in lower for kw in keywords):
            return bucket
    return 'others'


def partition_who(names: Any) -> WhoGroups:
    """Place each name in exactly one role bucket."""
    buckets: Dict[str, List[str]] = {}
    for name in parse_names(names):
        buckets.setdefault(classify_role(name), []).append(name)
    return WhoGroups(
        managers       = buckets.get('managers', []),
        union_stewards = buckets.get('union_stewards', []),
        security       = buckets.get('security', []),
        others         = buckets.get('others', []),
    )


def all_names(groups: WhoGroups) -> List[str]:
    return _dedupe(
        groups.managers + groups.union_stewards + groups.security
        + groups.accusers + groups.accused + groups.others
    )
