"""
clearcase/models/serialize.py
dict <-> dataclass conversion for the JSON surfaces (API, SQLite payloads,
remote responses). Keys on the wire are camelCase, as the mobile client
stores them; snake_case keys are accepted on the way in.
"""

import re
from dataclasses import asdict, fields
from typing import Any, Dict, Type, TypeVar

from clearcase.models.record import ApiIncident, OrganizedIncident, ProcessedIncident, StructuredIncident

T = TypeVar('T', bound=OrganizedIncident)

_CAMEL_RE = re.compile(r'_([a-z])')
_SNAKE_RE = re.compile(r'(?<!^)(?=[A-Z])')


def to_camel(name: str) -> str:
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), name)


def to_snake(name: str) -> str:
    return _SNAKE_RE.sub('_', name).lower()


def _camelize(value: Any) -> Any:
    if isinstance(value, dict):
        return {to_camel(k): _camelize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_camelize(v) for v in value]
    return value


# ── OUTBOUND ─────────────────────────────────────────────────

def structured_to_dict(incident: StructuredIncident) -> Dict[str, Any]:
    return _camelize(asdict(incident))


def incident_to_dict(incident: OrganizedIncident) -> Dict[str, Any]:
    return _camelize(asdict(incident))


# ── INBOUND ──────────────────────────────────────────────────

def incident_from_dict(data: Dict[str, Any], cls: Type[T] = ProcessedIncident) -> T:
    """
    Build an incident record from a loosely shaped dict.
    Unknown keys are dropped; None values fall back to field defaults;
    lists in string fields are joined with ", ".
    """
    known = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    for raw_key, value in (data or {}).items():
        key = to_snake(str(raw_key))
        if key == 'category':
            key = 'category_or_issue'
        if key not in known or value is None:
            continue
        if key == 'files':
            kwargs[key] = [str(v) for v in value] if isinstance(value, (list, tuple)) else []
        elif isinstance(value, (list, tuple)):
            kwargs[key] = ', '.join(str(v) for v in value if v is not None)
        else:
            kwargs[key] = value if isinstance(value, str) else str(value)
    return cls(**kwargs)


def api_incident_from_dict(data: Dict[str, Any]) -> ApiIncident:
    """Coerce one item of the remote organize response."""
    def _text(key: str) -> str:
        value = data.get(key)
        return value.strip() if isinstance(value, str) else ''

    def _list(key: str):
        value = data.get(key)
        if isinstance(value, list):
            return [str(v).strip() for v in value if isinstance(v, str) and v.strip()]
        if isinstance(value, str) and value.strip():
            return [value.strip()]
        return []

    return ApiIncident(
        date      = _text('date'),
        category  = _text('category') or _text('categoryOrIssue'),
        who       = _list('who'),
        what      = _text('what'),
        where     = _text('where'),
        when      = _text('when'),
        witnesses = _list('witnesses'),
        notes     = _text('notes'),
    )

