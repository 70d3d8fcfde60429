"""
tests/test_remote.py
HTTP organize / grammar clients and the notes parser's remote fallback.
urllib is patched; nothing leaves the machine.
"""

import json
import urllib.error
from typing import List
from unittest.mock import MagicMock, patch

import pytest

from clearcase.errors import RemoteServiceError
from clearcase.models.record import ApiIncident
from clearcase.notes_parser import NotesParser, is_sparse
from clearcase.parsers.structured import parse_notes_to_structured
from clearcase.remote.base import OrganizerClient
from clearcase.remote.http_client import HttpGrammarClient, HttpOrganizerClient

URL = 'http://127.0.0.1:9999/organize'


def _response(payload) -> MagicMock:
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode('utf-8')
    resp = MagicMock()
    resp.__enter__.return_value.read.return_value = body
    return resp


def _sent_body(mock_urlopen) -> dict:
    request = mock_urlopen.call_args[0][0]
    return json.loads(request.data.decode('utf-8'))


class FakeOrganizer(OrganizerClient):

    def __init__(self, incidents: List[ApiIncident] = None, error: Exception = None):
        self.incidents = incidents or []
        self.error     = error
        self.calls     = 0

    def organize(self, notes):
        self.calls += 1
        if self.error:
            raise self.error
        return self.incidents


# ── ORGANIZE CLIENT ──────────────────────────────────────────

class TestHttpOrganizerClient:

    @patch('urllib.request.urlopen')
    def test_ok_response(self, mock_urlopen):
        mock_urlopen.return_value = _response({
            'ok': True,
            'incidents': [{'what': 'Jane yelled', 'who': ['Jane'], 'category': 'Harassment'}],
        })
        incidents = HttpOrganizerClient(URL, api_key='secret').organize('raw notes')
        assert incidents == [ApiIncident(category='Harassment', who=['Jane'], what='Jane yelled')]
        assert _sent_body(mock_urlopen) == {'notes': 'raw notes'}
        request = mock_urlopen.call_args[0][0]
        assert request.get_header('Authorization') == 'Bearer secret'

    @patch('urllib.request.urlopen')
    def test_ok_false_raises_with_code(self, mock_urlopen):
        mock_urlopen.return_value = _response({'ok': False, 'error': 'quota', 'code': 'RATE_LIMIT'})
        with pytest.raises(RemoteServiceError) as exc:
            HttpOrganizerClient(URL).organize('raw notes')
        assert exc.value.code == 'RATE_LIMIT'
        assert 'quota' in str(exc.value)

    @patch('urllib.request.urlopen')
    def test_missing_incidents_raises(self, mock_urlopen):
        mock_urlopen.return_value = _response({'ok': True})
        with pytest.raises(RemoteServiceError):
            HttpOrganizerClient(URL).organize('raw notes')

    @patch('urllib.request.urlopen')
    def test_malformed_json_raises(self, mock_urlopen):
        mock_urlopen.return_value = _response(b'<html>oops')
        with pytest.raises(RemoteServiceError):
            HttpOrganizerClient(URL).organize('raw notes')

    @patch('urllib.request.urlopen')
    def test_http_error_raises(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.HTTPError(URL, 503, 'unavailable', None, None)
        with pytest.raises(RemoteServiceError) as exc:
            HttpOrganizerClient(URL).organize('raw notes')
        assert exc.value.code == '503'

    @patch('urllib.request.urlopen')
    def test_unreachable_raises(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.URLError('connection refused')
        with pytest.raises(RemoteServiceError):
            HttpOrganizerClient(URL).organize('raw notes')


# ── GRAMMAR CLIENT ───────────────────────────────────────────

class TestHttpGrammarClient:

    @patch('urllib.request.urlopen')
    def test_improve_is_cached_per_instance(self, mock_urlopen):
        mock_urlopen.return_value = _response({'improvedText': 'I left.', 'hasChanges': True})
        client = HttpGrammarClient(URL)
        assert client.improve('i left').improved_text == 'I left.'
        assert client.improve('i left').improved_text == 'I left.'
        assert mock_urlopen.call_count == 1

        HttpGrammarClient(URL).improve('i left')
        assert mock_urlopen.call_count == 2

    @patch('urllib.request.urlopen')
    def test_failure_returns_input(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.URLError('down')
        result = HttpGrammarClient(URL).improve('i left')
        assert result.improved_text == 'i left'
        assert result.has_changes is False

    @patch('urllib.request.urlopen')
    def test_blank_text_skips_remote(self, mock_urlopen):
        assert HttpGrammarClient(URL).improve('   ').improved_text == '   '
        mock_urlopen.assert_not_called()

    @patch('urllib.request.urlopen')
    def test_improve_many(self, mock_urlopen):
        mock_urlopen.return_value = _response({'results': [
            {'improvedText': 'A.', 'hasChanges': True},
            {'improvedText': 'b', 'hasChanges': False},
        ]})
        results = HttpGrammarClient(URL).improve_many(['a', 'b', 'a'])
        assert [r.improved_text for r in results] == ['A.', 'b', 'A.']
        assert [r.has_changes for r in results]   == [True, False, True]
        assert _sent_body(mock_urlopen) == {'texts': ['a', 'b']}

    @patch('urllib.request.urlopen')
    def test_improve_many_length_mismatch_keeps_text(self, mock_urlopen):
        mock_urlopen.return_value = _response({'results': [{'improvedText': 'A.'}]})
        results = HttpGrammarClient(URL).improve_many(['a', 'b'])
        assert [r.improved_text for r in results] == ['a', 'b']


# ── NOTES PARSER ─────────────────────────────────────────────

class TestNotesParser:

    def test_rich_local_parse_skips_remote(self):
        organizer = FakeOrganizer()
        NotesParser(organizer).parse('9:00 AM - Manager Jane Doe called me in.')
        assert organizer.calls == 0

    def test_sparse_local_parse_asks_remote(self):
        notes = 'Case 12 opened about the thing yesterday'
        assert is_sparse(parse_notes_to_structured(notes))
        organizer = FakeOrganizer([ApiIncident(what='Jane yelled at me', who=['Jane'])])
        result = NotesParser(organizer).parse(notes)
        assert organizer.calls == 1
        assert result.who.others   == ['Jane']
        assert result.category     == 'Harassment (Verbal, Physical, Sexual)'
        # empty remote fields filled from the local parse
        assert result.date         == 'yesterday'
        assert result.case_number  == '12'

    def test_no_remote_incidents_keeps_local(self):
        notes  = 'Case 12 opened about the thing yesterday'
        result = NotesParser(FakeOrganizer([])).parse(notes)
        assert result == parse_notes_to_structured(notes)

    def test_remote_errors_propagate(self):
        parser = NotesParser(FakeOrganizer(error=RemoteServiceError('down')))
        with pytest.raises(RemoteServiceError):
            parser('nothing much to say here')

    def test_without_organizer_is_local(self):
        assert NotesParser().parse('plain text') == parse_notes_to_structured('plain text')
