"""
clearcase/storage/incident_store.py
Persistence for processed incidents.

SCHEMA NOTES:
- one row per incident, keyed by id
- payload holds the full record as camelCase JSON
- case_number, case_number_norm and category are copied out for search
- created_at / updated_at are ISO-8601 UTC strings
"""

import json
import logging
import sqlite3
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from clearcase.models.record import ProcessedIncident
from clearcase.models.serialize import incident_from_dict, incident_to_dict
from clearcase.parsers.case_number import normalize_for_search

logger = logging.getLogger(__name__)

SCHEMA_VERSION = '1.0'


class IncidentStore(ABC):
    """Persistence collaborator. The pipeline calls these; it owns no SQL."""

    @abstractmethod
    def save(self, incident: ProcessedIncident) -> ProcessedIncident:
        ...

    @abstractmethod
    def get_all(self) -> List[ProcessedIncident]:
        ...

    @abstractmethod
    def get_by_id(self, incident_id: str) -> Optional[ProcessedIncident]:
        ...

    @abstractmethod
    def delete(self, incident_id: str) -> bool:
        ...

    def delete_many(self, incident_ids: Iterable[str]) -> int:
        return sum(1 for i in incident_ids if self.delete(i))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SqliteIncidentStore(IncidentStore):

    def __init__(self, db_path: Path):
        self.db_path = str(db_path)
        self._lock   = threading.Lock()
        conn = self._connect()
        try:
            _create_schema(conn)
            conn.commit()
        finally:
            conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")   # Safe concurrent reads
        return conn

    # ── WRITE ────────────────────────────────────────────────
    def save(self, incident: ProcessedIncident) -> ProcessedIncident:
        """
        Insert or replace by id. Returns a saved copy: a missing id is generated,
        created_at is kept from the first save, updated_at is refreshed.
        """
        now      = _now()
        incident = replace(incident, id=incident.id or str(uuid.uuid4()))
        with self._lock:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT created_at FROM incidents WHERE id = ?", (incident.id,)
                ).fetchone()
                incident.created_at = (row['created_at'] if row else None) or incident.created_at or now
                incident.updated_at = now
                conn.execute("""
                    INSERT OR REPLACE INTO incidents
                    (id, case_number, case_number_norm, category,
                     canonical_event_date, payload, created_at, updated_at)
                    VALUES (?,?,?,?,?,?,?,?)
                """, (
                    incident.id,
                    incident.case_number,
                    normalize_for_search(incident.case_number or ''),
                    incident.category_or_issue,
                    incident.canonical_event_date,
                    json.dumps(incident_to_dict(incident)),
                    incident.created_at,
                    incident.updated_at,
                ))
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Incident save failed: {e}")
                raise
            finally:
                conn.close()
        logger.debug(f"Saved incident {incident.id}")
        return incident

    def delete(self, incident_id: str) -> bool:
        with self._lock:
            conn = self._connect()
            try:
                cur = conn.execute("DELETE FROM incidents WHERE id = ?", (incident_id,))
                conn.commit()
                return cur.rowcount > 0
            finally:
                conn.close()

    def delete_many(self, incident_ids: Iterable[str]) -> int:
        ids = [(i,) for i in incident_ids]
        if not ids:
            return 0
        with self._lock:
            conn = self._connect()
            try:
                before = conn.total_changes
                conn.executemany("DELETE FROM incidents WHERE id = ?", ids)
                conn.commit()
                removed = conn.total_changes - before
            finally:
                conn.close()
        logger.info(f"Bulk delete removed {removed} incident(s)")
        return removed

    # ── READ ─────────────────────────────────────────────────
    def get_all(self) -> List[ProcessedIncident]:
        """Newest first."""
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT payload FROM incidents ORDER BY created_at DESC, id"
            ).fetchall()
        finally:
            conn.close()
        return [incident_from_dict(json.loads(r['payload'])) for r in rows]

    def get_by_id(self, incident_id: str) -> Optional[ProcessedIncident]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT payload FROM incidents WHERE id = ?", (incident_id,)
            ).fetchone()
        finally:
            conn.close()
        return incident_from_dict(json.loads(row['payload'])) if row else None


# ── SCHEMA ───────────────────────────────────────────────────

def _create_schema(conn: sqlite3.Connection) -> None:
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS clearcase_meta (
            key     TEXT PRIMARY KEY,
            value   TEXT
        );

        CREATE TABLE IF NOT EXISTS incidents (
            id                    TEXT PRIMARY KEY,
            case_number           TEXT,
            case_number_norm      TEXT,
            category              TEXT,
            canonical_event_date  TEXT,
            payload               TEXT NOT NULL,    -- camelCase JSON record
            created_at            TEXT NOT NULL,
            updated_at            TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_incident_case     ON incidents(case_number_norm);
        CREATE INDEX IF NOT EXISTS idx_incident_category ON incidents(category);
        CREATE INDEX IF NOT EXISTS idx_incident_created  ON incidents(created_at DESC);
    """)
    conn.execute(
        "INSERT OR REPLACE INTO clearcase_meta (key, value) VALUES ('schema_version', ?)",
        (SCHEMA_VERSION,),
    )
