"""
clearcase/detectors/category_detector.py
Incident category taxonomy and keyword inference. Pure Python, offline.
The first rule whose keyword appears in the notes wins, so rules are
ordered from most to least specific.
"""

import re
from typing import Dict, List, Tuple

# ── TAXONOMY ─────────────────────────────────────────────────

INCIDENT_CATEGORIES: Dict[str, List[str]] = {
    'Workplace Conduct': [
        'Harassment (Verbal, Physical, Sexual)',
        'Discrimination (Race, Gender, Age, Disability, etc.)',
        'Retaliation',
        'Bullying / Intimidation',
        'Threats / Violence',
    ],
    'Policy & Compliance': [
        'Substance Abuse / Drug or Alcohol Policy Violation',
        'Safety Violation (OSHA, PPE, Hazard Reporting)',
        'Attendance / Tardiness',
        'Insubordination / Refusal to Follow Instructions',
        'Policy Violation (General)',
    ],
    'Operational / Incident-Based': [
        'Property Damage',
        'Equipment Misuse or Failure',
        'Unauthorized Access / Security Breach',
        'Theft / Missing Property',
        'Accident / Injury',
    ],
    'Other': [
        'Performance Issue',
        'Miscommunication / Procedural Error',
        'Other (Specify in Notes)',
    ],
}

DEFAULT_CATEGORY = 'Other (Specify in Notes)'

# ── KEYWORD RULES ────────────────────────────────────────────
# Keywords match at a word start, so stems like 'harass' cover 'harassed'.

CATEGORY_RULES: List[Tuple[str, List[str]]] = [
    ('Threats / Violence', [
        'threaten', 'threat', 'punched', 'hit me', 'shoved', 'pushed me',
        'assault', 'violence', 'violent', 'weapon', 'kill',
    ]),
    ('Theft / Missing Property', [
        'theft', 'stole', 'stolen', 'steal', 'missing property',
        'missing item', 'missing money', 'shoplift', 'took my',
    ]),
    ('Substance Abuse / Drug or Alcohol Policy Violation', [
        'drunk', 'alcohol', 'intoxicat', 'drug', 'high on', 'smelled of',
        'under the influence',
    ]),
    ('Accident / Injury', [
        'injur', 'accident', 'hurt', 'fell', 'slipped', 'bleeding', 'first aid',
    ]),
    ('Safety Violation (OSHA, PPE, Hazard Reporting)', [
        'unsafe', 'safety', 'hazard', 'osha', 'ppe', 'fire exit', 'forklift', 'spill',
    ]),
    ('Harassment (Verbal, Physical, Sexual)', [
        'harass', 'demean', 'hostil', 'inappropriate touch', 'sexual',
        'groped', 'yelled', 'screamed', 'cursed at', 'swore at',
    ]),
    ('Discrimination (Race, Gender, Age, Disability, etc.)', [
        'discriminat', 'racist', 'sexist', 'ageist', 'because of my race',
        'because of my age', 'disability',
    ]),
    ('Retaliation', [
        'retaliat', 'punish', 'after i reported', 'payback',
    ]),
    ('Bullying / Intimidation', [
        'bully', 'intimidat', 'mock', 'insult', 'humiliat', 'belittl',
        'do my whole job', 'took over',
    ]),
    ('Unauthorized Access / Security Breach', [
        'unauthorized', 'security breach', 'badge', 'break-in', 'broke in',
        'password', 'restricted area',
    ]),
    ('Property Damage', [
        'damaged', 'broke the', 'broken', 'vandal', 'destroyed', 'smashed',
    ]),
    ('Equipment Misuse or Failure', [
        'equipment', 'machine', 'malfunction', 'misuse', 'not working',
    ]),
    ('Attendance / Tardiness', [
        'tardy', 'came in late', 'showed up late', 'attendance', 'no call no show', 'absent',
        'clocked', 'clock in', 'clock out', 'timecard',
    ]),
    ('Insubordination / Refusal to Follow Instructions', [
        'insubordinat', 'refused to', 'refusal', 'would not follow', 'disobey',
    ]),
    ('Policy Violation (General)', [
        'policy', 'violation', 'violated', 'procedure', 'accus', 'write-up', 'written up',
    ]),
    ('Performance Issue', [
        'performance', 'productivity', 'quota', 'missed deadline', 'improvement plan',
    ]),
    ('Miscommunication / Procedural Error', [
        'miscommunicat', 'misunderst', 'confus', 'wrong schedule', 'mix-up', 'mixup',
    ]),
]

_COMPILED_RULES: List[Tuple[str, re.Pattern]] = [
    (label, re.compile(r'\b(?:' + '|'.join(re.escape(kw) for kw in keywords) + r')', re.IGNORECASE))
    for label, keywords in CATEGORY_RULES
]

# Display tag class, matched on lowercase category substrings.
TAG_CLASSES: List[Tuple[str, List[str]]] = [
    ('category-safety',     ['safety', 'accident', 'injury']),
    ('category-harassment', ['harassment', 'discrimination', 'bullying']),
    ('category-accusation', ['wrongful', 'accusation', 'false', 'theft']),
    ('category-policy',     ['policy', 'violation', 'misconduct']),
]


def get_all_categories() -> List[str]:
    return [label for items in INCIDENT_CATEGORIES.values() for label in items]


def get_category_options() -> List[Dict[str, object]]:
    """Grouped options for a category picker."""
    return [{'group': group, 'items': list(items)} for group, items in INCIDENT_CATEGORIES.items()]


def is_known_category(category: str) -> bool:
    return category in get_all_categories()


def infer_category(text: str) -> str:
    """Return the first matching taxonomy label, or DEFAULT_CATEGORY."""
    if not text or not text.strip():
        return DEFAULT_CATEGORY
    for label, pattern in _COMPILED_RULES:
        if pattern.search(text):
            return label
    return DEFAULT_CATEGORY


def category_tag_class(category: str) -> str:
    lower = (category or '').lower()
    for tag, needles in TAG_CLASSES:
        if any(n in lower for n in needles):
            return tag
    return 'category-default'
