"""
clearcase/category_cache.py
Sticky categories. An incident's notes + date hash to an incident key;
the first automatic category for a key is kept, and an explicit user choice
always wins.

The whole mapping lives in one JSON document under MAPPINGS_KEY in the
injected KeyValueStore. Corrupt or missing data is a cache miss.
"""

import hashlib
import json
import logging
import re
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Dict, Optional

from clearcase.models.record import CategoryMapping
from clearcase.storage.kv_store import KeyValueStore
from clearcase.text import to_str

logger = logging.getLogger(__name__)

MAPPINGS_KEY = 'incident-category-mappings'
KEY_LENGTH   = 16

_PUNCT_RE = re.compile(r'[^\w\s]')
_WS_RE    = re.compile(r'\s+')


def _normalize(value) -> str:
    text = _PUNCT_RE.sub(' ', to_str(value).casefold())
    return _WS_RE.sub(' ', text).strip()


def fingerprint(raw_notes: str, date: Optional[str] = None) -> str:
    """
    Stable incident key. Case, punctuation and whitespace edits map to the
    same key; a different date or different wording does not.
    """
    norm_date = _normalize(date) or 'no-date'
    payload   = f"{_normalize(raw_notes)}|{norm_date}"
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()[:KEY_LENGTH]


class CategoryCache:

    def __init__(self, store: KeyValueStore):
        self.store = store

    # ── STORAGE ──────────────────────────────────────────────
    def _load(self) -> Dict[str, CategoryMapping]:
        raw = self.store.get(MAPPINGS_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Category mappings unreadable, treating as empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning("Category mappings are not an object, treating as empty")
            return {}

        mappings: Dict[str, CategoryMapping] = {}
        for key, entry in data.items():
            if not isinstance(entry, dict) or not isinstance(entry.get('category'), str):
                continue
            mappings[key] = CategoryMapping(
                key            = key,
                category       = entry['category'],
                user_confirmed = bool(entry.get('userConfirmed', False)),
                confirmed_at   = str(entry.get('confirmedAt', '')),
            )
        return mappings

    def _store(self, mappings: Dict[str, CategoryMapping]) -> None:
        doc = {
            key: {
                'category':      m.category,
                'userConfirmed': m.user_confirmed,
                'confirmedAt':   m.confirmed_at,
            }
            for key, m in mappings.items()
        }
        self.store.set(MAPPINGS_KEY, json.dumps(doc))

    # ── LOOKUP ───────────────────────────────────────────────
    def get_mapping(self, key: str) -> Optional[CategoryMapping]:
        if not key:
            return None
        return self._load().get(key)

    def get_category_for_key(self, key: str) -> Optional[str]:
        mapping = self.get_mapping(key)
        if mapping:
            logger.debug(f"Category cache hit for {key}")
            return mapping.category
        return None

    def all_mappings(self) -> Dict[str, dict]:
        return {key: asdict(m) for key, m in self._load().items()}

    # ── WRITE ────────────────────────────────────────────────
    def save_category_mapping(self, key: str, category: str, user_confirmed: bool = False) -> bool:
        """
        Unconfirmed writes only fill an empty slot. Confirmed writes always
        overwrite. Returns True when the mapping was written.
        """
        if not key or not category:
            return False
        mappings = self._load()
        if not user_confirmed and key in mappings:
            logger.debug(f"Keeping existing category for {key}")
            return False

        mappings[key] = CategoryMapping(
            key            = key,
            category       = category,
            user_confirmed = user_confirmed,
            confirmed_at   = datetime.now(timezone.utc).isoformat(),
        )
        self._store(mappings)
        return True

    def clear(self) -> None:
        self.store.delete(MAPPINGS_KEY)
