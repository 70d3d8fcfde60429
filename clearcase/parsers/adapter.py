"""
clearcase/parsers/adapter.py
Bridges the remote organize service's flat incident shape into StructuredIncident.
"""

from typing import Any, Dict, List, Union

from clearcase.detectors.category_detector import infer_category, is_known_category
from clearcase.models.record import ApiIncident, StructuredIncident, TimelineEvent
from clearcase.models.serialize import api_incident_from_dict
from clearcase.parsers.case_number import extract_case_number
from clearcase.parsers.people import parse_names, partition_who
from clearcase.parsers.structured import extract_quotes


def adapt_api_incident(api: Union[ApiIncident, Dict[str, Any]]) -> StructuredIncident:
    """
    who is partitioned into role buckets by keyword; the remote gives no
    timeline, so one event with time=None is synthesized from `what`.
    """
    if isinstance(api, dict):
        api = api_incident_from_dict(api)

    what = api.what.strip()
    # Free-form remote labels ("Harassment") are mapped onto the taxonomy.
    if is_known_category(api.category):
        category = api.category
    else:
        category = infer_category(' '.join([api.category, what, api.notes]))

    timeline: List[TimelineEvent] = []
    if what:
        timeline.append(TimelineEvent(event=what, time=None, quotes=extract_quotes(what)))

    return StructuredIncident(
        date          = api.date or None,
        category      = category,
        who           = partition_who(api.who),
        where         = api.where or None,
        timeline      = timeline,
        what_happened = what,
        witnesses     = parse_names(api.witnesses),
        notes         = [api.notes] if api.notes else [],
        quotes        = extract_quotes(' '.join([what, api.notes])),
        case_number   = extract_case_number('\n'.join([api.notes, what])),
    )
