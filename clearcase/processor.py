"""
clearcase/processor.py
Incident processor: turns an organized incident (plus the raw notes it came
from) into a ProcessedIncident with a canonical date, a sticky category and
voice-normalized narrative.

Never raises for malformed input and never mutates what it is given.
"""

import copy
import logging
from dataclasses import asdict
from datetime import date
from typing import Any, Callable, Dict, Optional, Union

from clearcase.category_cache import CategoryCache, fingerprint
from clearcase.models.record import OrganizedIncident, ProcessedIncident, StructuredIncident
from clearcase.models.serialize import incident_from_dict
from clearcase.parsers.dates import extract_date_text, resolve_date
from clearcase.parsers.people import all_names, format_who_list, format_who_text
from clearcase.parsers.times import extract_first_time_from_notes
from clearcase.text import to_str
from clearcase.voice import FIRST_PERSON, VoiceNormalizer

logger = logging.getLogger(__name__)

NO_DATE     = 'no date'
NAME_FIELDS = ('who', 'witnesses')

IncidentInput = Union[OrganizedIncident, Dict[str, Any]]


def _coerce(incident: Any) -> ProcessedIncident:
    """Fresh ProcessedIncident from a dataclass or dict; the input is not touched."""
    if isinstance(incident, ProcessedIncident):
        return copy.deepcopy(incident)
    if isinstance(incident, OrganizedIncident):
        return ProcessedIncident(**copy.deepcopy(asdict(incident)))
    if isinstance(incident, dict):
        data = dict(incident)
        for key in NAME_FIELDS:
            # lists and {name: ...} objects go through the name normalizer
            if isinstance(data.get(key), (list, tuple, dict)):
                data[key] = format_who_text(data[key])
        return incident_from_dict(data, ProcessedIncident)
    if incident is not None:
        logger.warning(f"process_incident: unsupported input type {type(incident).__name__}")
    return ProcessedIncident()


def _date_source(incident: ProcessedIncident, raw_notes: Optional[str]) -> Optional[str]:
    for candidate in (incident.date, incident.when):
        text = to_str(candidate).strip()
        if text and text.lower() != NO_DATE:
            return text
    if raw_notes:
        return extract_date_text(raw_notes)
    return None


def structured_to_incident(structured: StructuredIncident, raw_notes: Optional[str] = None) -> OrganizedIncident:
    """Flatten a structured parse into the persisted record's text fields."""
    first_time = next((e.time for e in structured.timeline if e.time), None)
    if not first_time and raw_notes:
        found      = extract_first_time_from_notes(raw_notes)
        first_time = found.display if found else None

    timeline = [f"{e.time} - {e.event}" if e.time else e.event for e in structured.timeline]
    evidence = [f"{e.type}: {e.detail}" if e.detail else e.type for e in structured.evidence_or_tests]
    requests = [
        f"{r.request} ({r.response})" if r.response != 'unknown' else r.request
        for r in structured.requests_and_responses
    ]

    return OrganizedIncident(
        date              = structured.date or '',
        category_or_issue = structured.category,
        who               = format_who_text(all_names(structured.who)),
        what              = structured.what_happened,
        where             = structured.where or '',
        when              = first_time or '',
        witnesses         = ', '.join(format_who_list(structured.witnesses)),
        notes             = '\n'.join(structured.notes),
        timeline          = '\n'.join(timeline) or None,
        requests          = '\n'.join(requests) or None,
        policy            = '\n'.join(structured.policy_or_procedure) or None,
        evidence          = '\n'.join(evidence) or None,
        case_number       = structured.case_number,
    )


class IncidentProcessor:
    """
    Holds the category cache, the voice normalizer and the clock used as the
    date resolver's reference, so each instance is independent.
    """

    def __init__(
        self,
        cache: CategoryCache,
        voice: Optional[VoiceNormalizer] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.cache = cache
        self.voice = voice or VoiceNormalizer()
        self.clock = clock or date.today

    def process_incident(
        self,
        incident:           IncidentInput,
        author_perspective: str           = FIRST_PERSON,
        raw_notes:          Optional[str] = None,
    ) -> ProcessedIncident:
        try:
            out = _coerce(incident)
        except Exception as e:
            logger.warning(f"Incident payload unreadable, starting from an empty record: {e}")
            out = ProcessedIncident()

        # 1. incident key + cached category
        existing: Optional[str] = None
        if raw_notes:
            try:
                out.incident_key = fingerprint(raw_notes, out.date)
                existing         = self.cache.get_category_for_key(out.incident_key)
            except Exception as e:
                logger.warning(f"Category lookup failed, continuing without cache: {e}")

        # 2. canonical date; original text is kept for display either way
        try:
            source = _date_source(out, raw_notes)
            if source:
                out.original_event_date_text = source
                resolved = resolve_date(source, self.clock())
                if resolved:
                    out.canonical_event_date = resolved.canonical_event_date
        except Exception as e:
            logger.warning(f"Date resolution failed for incident {out.id or '(new)'}: {e}")

        # 3-4. sticky category; first automatic choice is remembered
        if existing:
            out.category_or_issue = existing
        elif out.incident_key and out.category_or_issue:
            try:
                self.cache.save_category_mapping(out.incident_key, out.category_or_issue, False)
            except Exception as e:
                logger.warning(f"Category mapping not saved: {e}")

        # 5. voice
        out.what  = self.voice.normalize(out.what, author_perspective)
        out.notes = self.voice.normalize(out.notes, author_perspective)
        return out

    def process_structured(
        self,
        structured:         StructuredIncident,
        raw_notes:          Optional[str] = None,
        author_perspective: str           = FIRST_PERSON,
    ) -> ProcessedIncident:
        return self.process_incident(
            structured_to_incident(structured, raw_notes),
            author_perspective = author_perspective,
            raw_notes          = raw_notes,
        )

    def update_incident_category(self, incident_key: str, category: str, user_confirmed: bool = True) -> bool:
        """Explicit user edit; always overrides an automatic mapping."""
        return self.cache.save_category_mapping(incident_key, category, user_confirmed)
