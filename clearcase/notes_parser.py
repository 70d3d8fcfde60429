"""
clearcase/notes_parser.py
The heavy parse the organize controller runs off the keystroke path.

Local section parsing always runs. When an OrganizerClient is configured and
the local result is sparse (no timeline, no people, no witnesses), the remote
service is asked as well and its first incident is adapted; empty fields of
the remote result are filled from the local one.

Remote errors propagate so the controller can fall back to the fast result.
"""

import logging
from dataclasses import fields
from typing import Optional

from clearcase.detectors.category_detector import DEFAULT_CATEGORY
from clearcase.models.record import StructuredIncident
from clearcase.parsers.adapter import adapt_api_incident
from clearcase.parsers.people import all_names
from clearcase.parsers.structured import parse_notes_to_structured
from clearcase.remote.base import OrganizerClient

logger = logging.getLogger(__name__)


def is_sparse(incident: StructuredIncident) -> bool:
    return not (incident.timeline or all_names(incident.who) or incident.witnesses)


def _fill_empty(primary: StructuredIncident, fallback: StructuredIncident) -> StructuredIncident:
    for f in fields(StructuredIncident):
        value = getattr(primary, f.name)
        if f.name == 'category':
            if value == DEFAULT_CATEGORY:
                setattr(primary, f.name, fallback.category)
        elif f.name == 'who':
            if not all_names(value):
                primary.who = fallback.who
        elif not value:
            setattr(primary, f.name, getattr(fallback, f.name))
    return primary


class NotesParser:

    def __init__(self, organizer: Optional[OrganizerClient] = None):
        self.organizer = organizer

    def __call__(self, text: str) -> StructuredIncident:
        return self.parse(text)

    def parse(self, text: str) -> StructuredIncident:
        local = parse_notes_to_structured(text)
        if self.organizer is None or not is_sparse(local):
            return local

        logger.info("Local parse is sparse; asking the organize service")
        incidents = self.organizer.organize(text)
        if not incidents:
            logger.info("Organize service returned no incidents; keeping local parse")
            return local
        return _fill_empty(adapt_api_incident(incidents[0]), local)
