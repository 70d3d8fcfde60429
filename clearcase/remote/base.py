"""
clearcase/remote/base.py
Interfaces for the two remote services the pipeline may call.
To add a new backend: subclass OrganizerClient / GrammarClient.

Contract differences:
- organize() raises RemoteServiceError; the controller turns that into
  a fast-result-only fallback.
- improve() never raises; on any failure it returns the input unchanged
  with has_changes=False.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List

from clearcase.models.record import ApiIncident

logger = logging.getLogger(__name__)


@dataclass
class GrammarResult:
    improved_text:  str
    has_changes:    bool = False


class OrganizerClient(ABC):

    @abstractmethod
    def organize(self, notes: str) -> List[ApiIncident]:
        """
        Send raw notes, get back flat incidents.
        Raises RemoteServiceError on transport errors, non-2xx,
        malformed JSON, ok=false or a missing incidents list.
        """
        ...


class GrammarClient(ABC):
    """
    Grammar improvement with a per-instance cache, so tests and sessions
    never share state.
    """

    def __init__(self):
        self._cache: Dict[str, str] = {}

    @abstractmethod
    def _improve_remote(self, text: str) -> GrammarResult:
        """One remote call. May raise; improve() catches."""
        ...

    def _improve_many_remote(self, texts: List[str]) -> List[GrammarResult]:
        return [self._improve_remote(t) for t in texts]

    def improve(self, text: str) -> GrammarResult:
        if not text or not text.strip():
            return GrammarResult(improved_text=text or '', has_changes=False)
        if text in self._cache:
            improved = self._cache[text]
            return GrammarResult(improved_text=improved, has_changes=improved != text)
        try:
            result = self._improve_remote(text)
        except Exception as e:
            _log_failure(e)
            return GrammarResult(improved_text=text, has_changes=False)
        self._cache[text] = result.improved_text
        return result

    def improve_many(self, texts: List[str]) -> List[GrammarResult]:
        """Batch form; only uncached texts go to the remote service."""
        pending = [t for t in dict.fromkeys(texts) if t and t.strip() and t not in self._cache]
        if pending:
            try:
                results = self._improve_many_remote(pending)
                if len(results) != len(pending):
                    raise ValueError(f"expected {len(pending)} results, got {len(results)}")
            except Exception as e:
                _log_failure(e)
                results = []
            for text, result in zip(pending, results):
                self._cache[text] = result.improved_text
        out: List[GrammarResult] = []
        for text in texts:
            improved = self._cache.get(text, text)
            out.append(GrammarResult(improved_text=improved, has_changes=improved != text))
        return out

    def clear_cache(self) -> None:
        self._cache.clear()


def _log_failure(e: Exception) -> None:
    logger.warning(f"Grammar improvement unavailable: {e}")
