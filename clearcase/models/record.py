"""
clearcase/models/record.py
Shared dataclass schema. Parsers, the processor, the controller and the
stores all use these types. Data only, no logic.
"""

from dataclasses import dataclass, field
from typing import List, Optional


# ── FAST / RESOLVED VALUES ───────────────────────────────────

@dataclass
class FastScanResult:
    """Synchronous header hints. Recomputed on every keystroke."""
    time:         Optional[str] = None     # "9:00 AM"
    case_number:  Optional[str] = None     # bare value, e.g. "4521"


@dataclass
class ResolvedDate:
    canonical_event_date:  str             # YYYY-MM-DD
    original_text:         str
    confidence:            str = 'high'    # high / medium / low


@dataclass
class ResolvedTime:
    display:  str                          # "2:30 PM"
    value:    str                          # "14:30"


@dataclass
class CaseChip:
    bare:      str                         # "1234"
    prefixed:  str                         # "Case 1234"


# ── STRUCTURED PARSE ─────────────────────────────────────────

@dataclass
class TimelineEvent:
    event:   str
    time:    Optional[str]  = None         # display form, "9:25 AM"
    quotes:  List[str]      = field(default_factory=list)


@dataclass
class RequestResponse:
    request:   str
    response:  str           = 'unknown'   # approved / denied / unknown
    by_whom:   Optional[str] = None


@dataclass
class EvidenceTest:
    type:    str                           # "lab test", "sample", "test"
    detail:  Optional[str] = None
    status:  Optional[str] = None          # performed / unclear


@dataclass
class WhoGroups:
    accused:         List[str] = field(default_factory=list)
    accusers:        List[str] = field(default_factory=list)
    managers:        List[str] = field(default_factory=list)
    union_stewards:  List[str] = field(default_factory=list)
    security:        List[str] = field(default_factory=list)
    others:          List[str] = field(default_factory=list)


@dataclass
class StructuredIncident:
    """Canonical parsed shape. List fields are never None."""
    date:                    Optional[str]          = None   # raw date text, pre-canonicalization
    category:                str                    = 'Other (Specify in Notes)'
    who:                     WhoGroups              = field(default_factory=WhoGroups)
    where:                   Optional[str]          = None
    timeline:                List[TimelineEvent]    = field(default_factory=list)
    what_happened:           str                    = ''
    requests_and_responses:  List[RequestResponse]  = field(default_factory=list)
    policy_or_procedure:     List[str]              = field(default_factory=list)
    evidence_or_tests:       List[EvidenceTest]     = field(default_factory=list)
    witnesses:               List[str]              = field(default_factory=list)
    outcome_or_next:         Optional[str]          = None
    notes:                   List[str]              = field(default_factory=list)
    quotes:                  List[str]              = field(default_factory=list)
    case_number:             Optional[str]          = None


@dataclass
class ApiIncident:
    """Flat incident shape returned by the remote organize service."""
    date:       str        = ''
    category:   str        = ''
    who:        List[str]  = field(default_factory=list)
    what:       str        = ''
    where:      str        = ''
    when:       str        = ''
    witnesses:  List[str]  = field(default_factory=list)
    notes:      str        = ''


# ── PERSISTED RECORDS ────────────────────────────────────────

@dataclass
class OrganizedIncident:
    id:                 str            = ''
    date:               str            = ''
    category_or_issue:  str            = ''
    who:                str            = ''
    what:               str            = ''
    where:              str            = ''
    when:               str            = ''
    witnesses:          str            = ''
    notes:              str            = ''
    timeline:           Optional[str]  = None
    requests:           Optional[str]  = None
    policy:             Optional[str]  = None
    evidence:           Optional[str]  = None
    case_number:        Optional[str]  = None
    files:              List[str]      = field(default_factory=list)
    created_at:         str            = ''
    updated_at:         str            = ''


@dataclass
class ProcessedIncident(OrganizedIncident):
    canonical_event_date:     Optional[str] = None   # ISO date from the date resolver
    original_event_date_text: Optional[str] = None   # user's phrasing, shown when unresolved
    incident_key:             Optional[str] = None   # category cache fingerprint


@dataclass
class CategoryMapping:
    key:             str
    category:        str
    user_confirmed:  bool = False
    confirmed_at:    str  = ''


# ── CONTROLLER OUTPUT ────────────────────────────────────────

@dataclass
class ParseOutcome:
    """What the organize controller hands to the merge callback."""
    fast:        FastScanResult
    structured:  Optional[StructuredIncident] = None
    status:      str                          = 'fast'   # fast / structured / fallback
    error:       Optional[str]                = None
    cached:      bool                         = False
