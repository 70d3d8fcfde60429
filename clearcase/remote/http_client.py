"""
clearcase/remote/http_client.py
HTTP backends for the organize and grammar-improve services.
Plain urllib, JSON in / JSON out.

Request / response shapes:
  organize:  {"notes": str} → {"ok": bool, "incidents": [ApiIncident], "error"|"message": str, "code": str}
  improve:   {"text": str}  → {"improvedText": str, "hasChanges": bool}
             {"texts": [..]} → {"results": [{"improvedText", "hasChanges"}, ...]}

Privacy: request bodies are never logged; only lengths and status.
"""

import json
import logging
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional

from clearcase.errors import RemoteServiceError
from clearcase.models.record import ApiIncident
from clearcase.models.serialize import api_incident_from_dict
from clearcase.remote.base import GrammarClient, GrammarResult, OrganizerClient

logger = logging.getLogger(__name__)


def _post_json(
    url:         str,
    payload:     Dict[str, Any],
    timeout_sec: float,
    headers:     Optional[Dict[str, str]] = None,
) -> Any:
    """POST a JSON body and decode the JSON reply. Raises urllib / JSON errors."""
    req = urllib.request.Request(
        url,
        data    = json.dumps(payload).encode('utf-8'),
        headers = {'Content-Type': 'application/json', **(headers or {})},
        method  = 'POST',
    )
    with urllib.request.urlopen(req, timeout=timeout_sec) as resp:
        raw = resp.read().decode('utf-8')
    return json.loads(raw)


class HttpOrganizerClient(OrganizerClient):

    def __init__(
        self,
        url:         str,
        timeout_sec: float = 30,
        api_key:     str   = '',
    ):
        self.url         = url
        self.timeout_sec = timeout_sec
        self.api_key     = api_key

    def _headers(self) -> Dict[str, str]:
        return {'Authorization': f"Bearer {self.api_key}"} if self.api_key else {}

    def organize(self, notes: str) -> List[ApiIncident]:
        logger.info(f"Organize request ({len(notes)} chars)")
        try:
            data = _post_json(self.url, {'notes': notes}, self.timeout_sec, self._headers())
        except urllib.error.HTTPError as e:
            logger.warning(f"Organize service returned HTTP {e.code}")
            raise RemoteServiceError(f"HTTP {e.code}", code=str(e.code)) from e
        except urllib.error.URLError as e:
            logger.warning(f"Organize service unreachable: {e.reason}")
            raise RemoteServiceError(f"unreachable: {e.reason}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Organize service sent malformed JSON: {e}")
            raise RemoteServiceError("malformed JSON response") from e
        except OSError as e:
            # socket timeouts surface here
            logger.warning(f"Organize request failed: {e}")
            raise RemoteServiceError(str(e)) from e

        return self._parse_response(data)

    def _parse_response(self, data: Any) -> List[ApiIncident]:
        if not isinstance(data, dict):
            raise RemoteServiceError("response is not a JSON object")
        if not data.get('ok'):
            message = data.get('error') or data.get('message') or 'organize failed'
            code    = str(data.get('code') or '')
            logger.warning(f"Organize service reported failure (code={code or 'none'})")
            raise RemoteServiceError(str(message), code=code)
        incidents = data.get('incidents')
        if not isinstance(incidents, list):
            raise RemoteServiceError("response has no incidents list")
        parsed = [api_incident_from_dict(i) for i in incidents if isinstance(i, dict)]
        logger.info(f"Organize service returned {len(parsed)} incident(s)")
        return parsed


class HttpGrammarClient(GrammarClient):

    def __init__(
        self,
        url:         str,
        timeout_sec: float = 30,
        api_key:     str   = '',
    ):
        super().__init__()
        self.url         = url
        self.timeout_sec = timeout_sec
        self.api_key     = api_key

    def _headers(self) -> Dict[str, str]:
        return {'Authorization': f"Bearer {self.api_key}"} if self.api_key else {}

    @staticmethod
    def _to_result(item: Any, original: str) -> GrammarResult:
        if not isinstance(item, dict) or not isinstance(item.get('improvedText'), str):
            return GrammarResult(improved_text=original, has_changes=False)
        improved = item['improvedText']
        return GrammarResult(
            improved_text = improved,
            has_changes   = bool(item.get('hasChanges', improved != original)),
        )

    def _improve_remote(self, text: str) -> GrammarResult:
        data = _post_json(self.url, {'text': text}, self.timeout_sec, self._headers())
        return self._to_result(data, text)

    def _improve_many_remote(self, texts: List[str]) -> List[GrammarResult]:
        data    = _post_json(self.url, {'texts': texts}, self.timeout_sec, self._headers())
        results = data.get('results') if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise ValueError("response has no results list")
        return [self._to_result(item, text) for item, text in zip(results, texts)]
