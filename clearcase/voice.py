"""
clearcase/voice.py
Author-voice rewrite for narrative fields.

first_person:  "The reporting employee was approached" → "I was approached"
third_person:  "My manager told me" → "The reporting employee's manager told the reporting employee"

Quoted speech is never modified. Other people stay in third person.
An optional GrammarClient runs afterwards; its failures leave text unchanged.
"""

import logging
import re
from typing import List, Optional, Tuple

from clearcase.remote.base import GrammarClient
from clearcase.text import to_str

logger = logging.getLogger(__name__)

FIRST_PERSON = 'first_person'
THIRD_PERSON = 'third_person'
PERSPECTIVES = (FIRST_PERSON, THIRD_PERSON)

REPORTER = 'the reporting employee'

_QUOTED = re.compile(r'"[^"]*"|“[^”]*”|(?<!\w)\'[^\']*\'(?!\w)')

_REPORT_VERBS = (
    r'was|felt|experienced|reported|stated|said|told|asked|requested'
    r'|complained|noted|observed|witnessed'
)

# Possessives first so "the employee's" never becomes "I's".
_TO_FIRST: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\bthe reporting employee's\b", re.IGNORECASE), 'my'),
    (re.compile(r"\bthe employee's\b", re.IGNORECASE), 'my'),
    (re.compile(r"\bthe worker's\b", re.IGNORECASE), 'my'),
    (re.compile(r'\bthe reporting employee\b', re.IGNORECASE), 'I'),
    (re.compile(r'\bthe employee who reported\b', re.IGNORECASE), 'I'),
    (re.compile(r'\bthe worker who reported\b', re.IGNORECASE), 'I'),
    (re.compile(r'\bthe person reporting\b', re.IGNORECASE), 'I'),
    (re.compile(r'\bthe (?:employee|worker)(?=\s+(?:' + _REPORT_VERBS + r')\b)', re.IGNORECASE), 'I'),
    (re.compile(r'\bI were\b'), 'I was'),
    (re.compile(r'\bI are\b'), 'I am'),
    (re.compile(r'\bI is\b'), 'I am'),
    (re.compile(r'\bI has\b'), 'I have'),
]

# "me"/"I" after a verb become the object form; "I am" keeps verb agreement.
_TO_THIRD: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"\bI'm\b|\bI am\b"), f'{REPORTER} is'),
    (re.compile(r"\bI've\b|\bI have\b"), f'{REPORTER} has'),
    (re.compile(r"\bI'd\b"), f'{REPORTER} would'),
    (re.compile(r"\bI'll\b"), f'{REPORTER} will'),
    (re.compile(r'\bmyself\b', re.IGNORECASE), REPORTER),
    (re.compile(r'\bmine\b', re.IGNORECASE), f"{REPORTER}'s"),
    (re.compile(r'\bmy\b', re.IGNORECASE), f"{REPORTER}'s"),
    (re.compile(r'\bme\b', re.IGNORECASE), REPORTER),
    (re.compile(r'\bI\b'), REPORTER),
]

_LOWER_I        = re.compile(r'\bi\b(?!\.)')
_SENTENCE_START = re.compile(r'(^|[.!?]\s+)([a-z])')
_MID_SENTENCE   = re.compile(r'([.!?]\s+)([a-z])')


def _segments(text: str):
    """Yield (segment, is_quote) in order."""
    last = 0
    for m in _QUOTED.finditer(text):
        if m.start() > last:
            yield text[last:m.start()], False
        yield m.group(0), True
        last = m.end()
    if last < len(text):
        yield text[last:], False


def _capitalize_sentences(text: str, at_start: bool) -> str:
    pattern = _SENTENCE_START if at_start else _MID_SENTENCE
    return pattern.sub(lambda m: m.group(1) + m.group(2).upper(), text)


def _rewrite(segment: str, rules: List[Tuple[re.Pattern, str]]) -> str:
    for pattern, replacement in rules:
        segment = pattern.sub(replacement, segment)
    return segment


def normalize_voice(text: str, author_perspective: str = FIRST_PERSON) -> str:
    """Rewrite narrative text into the author's voice. Unknown perspectives are a no-op."""
    text = to_str(text)
    if not text.strip():
        return text
    if author_perspective == FIRST_PERSON:
        rules = _TO_FIRST
    elif author_perspective == THIRD_PERSON:
        rules = _TO_THIRD
    else:
        logger.warning(f"Unknown author perspective '{author_perspective}'; text left unchanged")
        return text

    parts: List[str] = []
    for index, (segment, is_quote) in enumerate(_segments(text)):
        if is_quote:
            parts.append(segment)
            continue
        rewritten = _rewrite(segment, rules)
        if author_perspective == FIRST_PERSON:
            rewritten = _LOWER_I.sub('I', rewritten)
        parts.append(_capitalize_sentences(rewritten, at_start=index == 0))
    return ''.join(parts)


class VoiceNormalizer:
    """normalize_voice plus an optional grammar pass."""

    def __init__(self, grammar: Optional[GrammarClient] = None):
        self.grammar = grammar

    def normalize(self, text: str, author_perspective: str = FIRST_PERSON) -> str:
        rewritten = normalize_voice(text, author_perspective)
        if self.grammar is None or not rewritten.strip():
            return rewritten
        return self.grammar.improve(rewritten).improved_text
