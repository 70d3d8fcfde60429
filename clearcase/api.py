"""
clearcase/api.py
─────────────────────────────────────────────────────────────────────────────
ClearCase: dual-mode API layer

TWO USAGE MODES:
  1. Importable module (UI event handlers in-process):
         from clearcase.api import ClearCaseAPI
         api = ClearCaseAPI(db_path=Path("clearcase.db"))
         header = api.scan(text)
         saved  = api.create_incident({}, raw_notes=text)

  2. FastAPI HTTP server (web UI via fetch()):
         python -m clearcase.api                  # default: port 8765
         python -m clearcase.api --port 9000
         uvicorn clearcase.api:app --port 8765

ENDPOINTS:
  POST   /scan                      fast scan: time + case number
  POST   /parse                     structured parse (fast result on failure)
  POST   /incidents                 process + save an incident
  GET    /incidents                 list, optional ?q= and ?category=
  GET    /incidents/{id}            single incident
  DELETE /incidents/{id}            delete one
  POST   /incidents/bulk-delete     delete many
  PUT    /incidents/{id}/category   user-confirmed category override
  GET    /categories                taxonomy for pickers
  GET    /health                    status

CORS: localhost-only. The server binds to 127.0.0.1 by default.

PRIVACY NOTE:
  Notes stay on-device unless an organizer_url / grammar_url is configured.
  Note bodies are never logged.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from clearcase.category_cache import CategoryCache
from clearcase.config import DEFAULT_CONFIG
from clearcase.controller import OrganizeController
from clearcase.detectors.category_detector import (
    get_all_categories,
    get_category_options,
    is_known_category,
)
from clearcase.models.record import ParseOutcome, ProcessedIncident
from clearcase.models.serialize import incident_to_dict, structured_to_dict
from clearcase.notes_parser import NotesParser
from clearcase.parsers.case_number import matches_case_number
from clearcase.parsers.fast_scan import quick_scan
from clearcase.parsers.structured import parse_notes_to_structured
from clearcase.processor import IncidentProcessor
from clearcase.remote.base import GrammarClient, OrganizerClient
from clearcase.remote.http_client import HttpGrammarClient, HttpOrganizerClient
from clearcase.storage.incident_store import IncidentStore, SqliteIncidentStore
from clearcase.storage.kv_store import JsonFileStore, KeyValueStore
from clearcase.voice import PERSPECTIVES, VoiceNormalizer

logger = logging.getLogger(__name__)

VERSION      = "1.0.0"
ALL_CATEGORY = "All Categories"


# ═══════════════════════════════════════════════════════════════════════════
# IMPORTABLE CLASS
# ═══════════════════════════════════════════════════════════════════════════

class ClearCaseAPI:
    """
    Wires the pipeline together: fast scan, organize controller, processor,
    category cache and incident store. Stores are created on first use so
    importing this module touches no files.
    """

    def __init__(
        self,
        db_path:            Path                       = Path("clearcase.db"),
        mappings_path:      Path                       = Path("clearcase_mappings.json"),
        organizer:          Optional[OrganizerClient]  = None,
        grammar:            Optional[GrammarClient]    = None,
        author_perspective: str                        = "first_person",
        parse_timeout_sec:  float                      = 10.0,
        parse_cache_size:   int                        = 128,
        clock:              Optional[Callable]         = None,
        store:              Optional[IncidentStore]    = None,
        kv_store:           Optional[KeyValueStore]    = None,
    ):
        self.db_path            = Path(db_path)
        self.mappings_path      = Path(mappings_path)
        self.author_perspective = author_perspective
        self._store             = store
        self._kv_store          = kv_store
        self._processor: Optional[IncidentProcessor] = None
        self._grammar           = grammar
        self._clock             = clock
        self._init_lock         = threading.Lock()
        self._parse_lock        = threading.Lock()
        self.controller         = OrganizeController(
            NotesParser(organizer),
            timeout_sec = parse_timeout_sec,
            cache_size  = parse_cache_size,
        )

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ClearCaseAPI":
        cfg = {**DEFAULT_CONFIG, **(config or {})}
        organizer = None
        if cfg["use_remote_organizer"] and cfg["organizer_url"]:
            organizer = HttpOrganizerClient(cfg["organizer_url"], timeout_sec=cfg["remote_timeout_sec"])
        grammar = None
        if cfg["grammar_url"]:
            grammar = HttpGrammarClient(cfg["grammar_url"], timeout_sec=cfg["remote_timeout_sec"])
        return cls(
            db_path            = Path(cfg["db_path"]),
            mappings_path      = Path(cfg["mappings_path"]),
            organizer          = organizer,
            grammar            = grammar,
            author_perspective = cfg["author_perspective"],
            parse_timeout_sec  = float(cfg["parse_timeout_sec"]),
            parse_cache_size   = int(cfg["parse_cache_size"]),
        )

    # ── INTERNAL ──────────────────────────────────────────────────────────

    @property
    def store(self) -> IncidentStore:
        with self._init_lock:
            if self._store is None:
                self._store = SqliteIncidentStore(self.db_path)
            return self._store

    @property
    def processor(self) -> IncidentProcessor:
        with self._init_lock:
            if self._processor is None:
                kv = self._kv_store or JsonFileStore(self.mappings_path)
                self._processor = IncidentProcessor(
                    CategoryCache(kv),
                    voice = VoiceNormalizer(self._grammar),
                    clock = self._clock,
                )
            return self._processor

    def _perspective(self, value: Optional[str]) -> str:
        perspective = value or self.author_perspective
        if perspective not in PERSPECTIVES:
            raise ValueError(f"author_perspective must be one of {', '.join(PERSPECTIVES)}")
        return perspective

    @staticmethod
    def _outcome_to_dict(outcome: ParseOutcome) -> Dict[str, Any]:
        return {
            "status":     outcome.status,
            "cached":     outcome.cached,
            "error":      outcome.error,
            "fast":       {"time": outcome.fast.time, "caseNumber": outcome.fast.case_number},
            "structured": structured_to_dict(outcome.structured) if outcome.structured else None,
        }

    # ── PARSING ───────────────────────────────────────────────────────────

    def scan(self, text: str) -> Dict[str, Optional[str]]:
        fast = quick_scan(text)
        return {"time": fast.time, "caseNumber": fast.case_number}

    def parse(self, text: str) -> Dict[str, Any]:
        """Immediate organize: fast result plus the structured parse, or fast only on failure."""
        with self._parse_lock:
            outcome = self.controller.run(text, lambda _o: None, immediate=True)
        if outcome is None:
            # superseded by a concurrent caller; answer with the fast result
            outcome = ParseOutcome(fast=quick_scan(text), status="fast")
        return self._outcome_to_dict(outcome)

    # ── INCIDENTS ─────────────────────────────────────────────────────────

    def create_incident(
        self,
        incident:           Optional[Dict[str, Any]] = None,
        raw_notes:          Optional[str]            = None,
        author_perspective: Optional[str]            = None,
    ) -> Dict[str, Any]:
        """
        Process and save. With only raw_notes, the notes are organized first.
        Raises ValueError when there is nothing to save.
        """
        perspective = self._perspective(author_perspective)
        if not incident and not (raw_notes and raw_notes.strip()):
            raise ValueError("incident or raw_notes required")

        if incident:
            processed = self.processor.process_incident(incident, perspective, raw_notes)
        else:
            with self._parse_lock:
                outcome = self.controller.run(raw_notes, lambda _o: None, immediate=True)
            if outcome is not None and outcome.structured is not None:
                structured = outcome.structured
            else:
                # remote organize failed or timed out; save the local parse
                structured = parse_notes_to_structured(raw_notes)
            processed = self.processor.process_structured(structured, raw_notes, perspective)

        saved = self.store.save(processed)
        logger.info(f"Saved incident {saved.id} ({saved.category_or_issue})")
        return incident_to_dict(saved)

    def list_incidents(self, q: Optional[str] = None, category: Optional[str] = None) -> List[Dict[str, Any]]:
        incidents = self.store.get_all()
        if category and category != ALL_CATEGORY:
            incidents = [i for i in incidents if i.category_or_issue == category]
        if q and q.strip():
            incidents = [i for i in incidents if _matches(i, q.strip())]
        return [incident_to_dict(i) for i in incidents]

    def get_incident(self, incident_id: str) -> Optional[Dict[str, Any]]:
        found = self.store.get_by_id(incident_id)
        return incident_to_dict(found) if found else None

    def delete_incident(self, incident_id: str) -> bool:
        return self.store.delete(incident_id)

    def bulk_delete(self, incident_ids: List[str]) -> int:
        return self.store.delete_many(incident_ids)

    def set_category(self, incident_id: str, category: str) -> Optional[Dict[str, Any]]:
        """User edit: pins the category for the incident key and saves the record."""
        if not is_known_category(category):
            raise ValueError(f"Unknown category: {category}")
        found = self.store.get_by_id(incident_id)
        if found is None:
            return None
        if found.incident_key:
            self.processor.update_incident_category(found.incident_key, category, user_confirmed=True)
        found.category_or_issue = category
        return incident_to_dict(self.store.save(found))

    def categories(self) -> Dict[str, Any]:
        return {"groups": get_category_options(), "all": get_all_categories()}


def _matches(incident: ProcessedIncident, query: str) -> bool:
    """Keyword, person or case number match."""
    if matches_case_number(incident.case_number, query):
        return True
    needle = query.lower()
    haystack = (
        incident.what, incident.who, incident.where,
        incident.category_or_issue, incident.notes, incident.witnesses,
    )
    return any(needle in (field or "").lower() for field in haystack)


# ═══════════════════════════════════════════════════════════════════════════
# REQUEST MODELS
# ═══════════════════════════════════════════════════════════════════════════

class TextRequest(BaseModel):
    text: str = ""


class IncidentRequest(BaseModel):
    incident:           Dict[str, Any] = Field(default_factory=dict)
    raw_notes:          Optional[str]  = None
    author_perspective: Optional[str]  = None


class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(default_factory=list)


class CategoryRequest(BaseModel):
    category: str


# ═══════════════════════════════════════════════════════════════════════════
# FASTAPI HTTP APP
# ═══════════════════════════════════════════════════════════════════════════

def _build_app(
    db_path: Path                  = Path("clearcase.db"),
    api:     Optional[ClearCaseAPI] = None,
) -> FastAPI:
    """Build the FastAPI application around one ClearCaseAPI instance."""
    _api = api or ClearCaseAPI(db_path=db_path)

    _app = FastAPI(
        title       = "ClearCase API",
        description = "Incident note parsing and storage, local API",
        version     = VERSION,
        docs_url    = "/docs",
        redoc_url   = None,
    )

    _app.add_middleware(
        CORSMiddleware,
        allow_origins     = [
            "http://localhost",
            "http://localhost:8765",
            "http://127.0.0.1",
            "http://127.0.0.1:8765",
            "null",   # file:// origin
        ],
        allow_methods     = ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers     = ["Content-Type"],
        allow_credentials = False,
    )

    # ── PARSING ─────────────────────────────────────────────────────────

    @_app.post("/scan", summary="Fast header scan")
    def scan(req: TextRequest):
        return _api.scan(req.text)

    @_app.post("/parse", summary="Structured parse")
    def parse(req: TextRequest):
        try:
            return _api.parse(req.text)
        except Exception as exc:
            logger.error(f"Parse endpoint error: {exc}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Parse failed: {exc}")

    # ── INCIDENTS ───────────────────────────────────────────────────────

    @_app.post("/incidents", summary="Process and save an incident")
    def create_incident(req: IncidentRequest):
        try:
            return _api.create_incident(req.incident, req.raw_notes, req.author_perspective)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except Exception as exc:
            logger.error(f"Create incident error: {exc}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Save failed: {exc}")

    @_app.get("/incidents", summary="List incidents")
    def list_incidents(
        q:        Optional[str] = Query(None, description="Keyword, person or case number"),
        category: Optional[str] = Query(None, description="Exact category label"),
    ):
        try:
            data = _api.list_incidents(q=q, category=category)
            return {"count": len(data), "incidents": data}
        except Exception as exc:
            raise HTTPException(status_code=500, detail=str(exc))

    @_app.post("/incidents/bulk-delete", summary="Delete several incidents")
    def bulk_delete(req: BulkDeleteRequest):
        try:
            return {"deleted": _api.bulk_delete(req.ids)}
        except Exception as exc:
            raise HTTPException(status_code=500, detail=str(exc))

    @_app.get("/incidents/{incident_id}", summary="Get one incident")
    def get_incident(incident_id: str):
        try:
            data = _api.get_incident(incident_id)
        except Exception as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        if data is None:
            raise HTTPException(status_code=404, detail=f"Incident not found: {incident_id}")
        return data

    @_app.delete("/incidents/{incident_id}", summary="Delete one incident")
    def delete_incident(incident_id: str):
        try:
            deleted = _api.delete_incident(incident_id)
        except Exception as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        if not deleted:
            raise HTTPException(status_code=404, detail=f"Incident not found: {incident_id}")
        return {"deleted": incident_id}

    @_app.put("/incidents/{incident_id}/category", summary="Override category")
    def set_category(incident_id: str, req: CategoryRequest):
        try:
            data = _api.set_category(incident_id, req.category)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except Exception as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        if data is None:
            raise HTTPException(status_code=404, detail=f"Incident not found: {incident_id}")
        return data

    # ── META ────────────────────────────────────────────────────────────

    @_app.get("/categories", summary="Category taxonomy")
    def categories():
        return _api.categories()

    @_app.get("/health", summary="Health check")
    def health():
        return {
            "status":    "ok",
            "db_exists": _api.db_path.exists(),
            "db_path":   str(_api.db_path),
            "version":   VERSION,
        }

    return _app


# Module-level app instance, used by `uvicorn clearcase.api:app`
app = _build_app()


# ═══════════════════════════════════════════════════════════════════════════
# ENTRYPOINT: python -m clearcase.api
# ═══════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import argparse

    import uvicorn

    from clearcase.config import ensure_config

    parser = argparse.ArgumentParser(
        prog        = "clearcase.api",
        description = "ClearCase API server for the local UI",
    )
    parser.add_argument("--port", type=int, default=None,
                        help="Port to bind (default: config api_port)")
    parser.add_argument("--db",   type=str, default=None,
                        help="Path to clearcase.db (default: config db_path)")
    parser.add_argument("--host", type=str, default=None,
                        help="Host to bind; keep 127.0.0.1 on shared networks")
    args = parser.parse_args()

    logging.basicConfig(
        level   = logging.INFO,
        format  = "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt = "%H:%M:%S",
    )

    cfg = ensure_config()
    if args.db:
        cfg["db_path"] = args.db
    host = args.host or cfg["api_host"]
    port = args.port or cfg["api_port"]

    server_app = _build_app(api=ClearCaseAPI.from_config(cfg))

    print(f"""
+--------------------------------------------------+
|   ClearCase API Server v{VERSION}
+--------------------------------------------------+
|  Local:    http://{host}:{port}
|  DB:       {cfg['db_path']}
|  Docs:     http://{host}:{port}/docs
|  Health:   http://{host}:{port}/health
+--------------------------------------------------+
""")

    uvicorn.run(
        server_app,
        host      = host,
        port      = port,
        log_level = "info",
    )
