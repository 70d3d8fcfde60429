"""
tests/test_api.py
─────────────────────────────────────────────────────────────────────────────
Tests for clearcase.api: the ClearCaseAPI class and the FastAPI routes.

Coverage:
  - scan / parse
  - create_incident from raw notes and from a payload, input validation
  - list_incidents: keyword, case number and category filters
  - set_category: user override is sticky for the same notes
  - delete / bulk delete
  - HTTP status mapping (400 / 404) via TestClient

All tests use a temporary SQLite DB and mappings file.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from clearcase.api import ClearCaseAPI, _build_app

SAMPLE_NOTES = (
    "On 7/22 around 9am, my manager Jane Doe accused me of theft at the warehouse. "
    "Case #4521. Timeline: 9:00 AM - accused me in front of team. Witnesses: Tom."
)

THEFT = 'Theft / Missing Property'


@pytest.fixture
def api(tmp_path):
    instance = ClearCaseAPI(
        db_path       = tmp_path / 'clearcase.db',
        mappings_path = tmp_path / 'mappings.json',
        clock         = lambda: date(2024, 8, 1),
    )
    yield instance
    instance.controller.close()


@pytest.fixture
def client(api):
    return TestClient(_build_app(api=api))


# ── IMPORTABLE CLASS ─────────────────────────────────────────

class TestClearCaseAPI:

    def test_no_files_until_used(self, tmp_path):
        ClearCaseAPI(db_path=tmp_path / 'lazy.db', mappings_path=tmp_path / 'lazy.json')
        assert not (tmp_path / 'lazy.db').exists()

    def test_scan(self, api):
        assert api.scan(SAMPLE_NOTES) == {'time': '9:00 AM', 'caseNumber': '4521'}

    def test_parse(self, api):
        result = api.parse(SAMPLE_NOTES)
        assert result['status'] == 'structured'
        assert result['structured']['caseNumber']      == '4521'
        assert result['structured']['who']['managers'] == ['Jane Doe']
        assert result['fast']['time'] == '9:00 AM'

    def test_create_from_raw_notes(self, api):
        saved = api.create_incident(raw_notes=SAMPLE_NOTES)
        assert saved['id']
        assert saved['canonicalEventDate'] == '2024-07-22'
        assert saved['categoryOrIssue']    == THEFT
        assert saved['caseNumber']         == '4521'
        assert api.get_incident(saved['id'])['what'] == saved['what']

    def test_create_from_payload(self, api):
        saved = api.create_incident({'what': 'i was sent home', 'date': 'yesterday'})
        assert saved['what'] == 'I was sent home'
        assert saved['canonicalEventDate'] == '2024-07-31'

    def test_create_requires_content(self, api):
        with pytest.raises(ValueError):
            api.create_incident()
        with pytest.raises(ValueError):
            api.create_incident({'what': 'x'}, author_perspective='second_person')

    def test_list_filters(self, api):
        api.create_incident(raw_notes=SAMPLE_NOTES)
        api.create_incident({'what': 'Broken forklift', 'category': 'Equipment Misuse or Failure'})
        assert len(api.list_incidents()) == 2
        assert len(api.list_incidents(q='45-21'))     == 1
        assert len(api.list_incidents(q='warehouse')) == 1
        assert len(api.list_incidents(q='zzz'))       == 0
        assert len(api.list_incidents(category=THEFT)) == 1
        assert len(api.list_incidents(category='All Categories')) == 2

    def test_user_category_sticks_for_same_notes(self, api):
        saved   = api.create_incident(raw_notes=SAMPLE_NOTES)
        updated = api.set_category(saved['id'], 'Retaliation')
        assert updated['categoryOrIssue'] == 'Retaliation'
        again = api.create_incident(raw_notes=SAMPLE_NOTES)
        assert again['categoryOrIssue'] == 'Retaliation'

    def test_set_category_validation(self, api):
        with pytest.raises(ValueError):
            api.set_category('any', 'Not A Category')
        assert api.set_category('missing', 'Retaliation') is None

    def test_delete_and_bulk_delete(self, api):
        ids = [api.create_incident({'what': f'entry {n}'})['id'] for n in range(3)]
        assert api.delete_incident(ids[0]) is True
        assert api.delete_incident(ids[0]) is False
        assert api.bulk_delete(ids[1:]) == 2
        assert api.list_incidents() == []

    def test_categories(self, api):
        data = api.categories()
        assert len(data['groups']) == 4
        assert THEFT in data['all']


# ── HTTP ROUTES ──────────────────────────────────────────────

class TestHttpRoutes:

    def test_health(self, client):
        body = client.get('/health').json()
        assert body['status'] == 'ok'

    def test_scan_route(self, client):
        r = client.post('/scan', json={'text': SAMPLE_NOTES})
        assert r.status_code == 200
        assert r.json()['caseNumber'] == '4521'

    def test_create_list_get_delete(self, client):
        created = client.post('/incidents', json={'raw_notes': SAMPLE_NOTES})
        assert created.status_code == 200
        incident_id = created.json()['id']

        listed = client.get('/incidents', params={'q': '4521'}).json()
        assert listed['count'] == 1

        assert client.get(f'/incidents/{incident_id}').status_code == 200
        assert client.delete(f'/incidents/{incident_id}').status_code == 200
        assert client.get(f'/incidents/{incident_id}').status_code == 404
        assert client.delete(f'/incidents/{incident_id}').status_code == 404

    def test_empty_create_is_400(self, client):
        assert client.post('/incidents', json={}).status_code == 400

    def test_category_route(self, client):
        incident_id = client.post('/incidents', json={'raw_notes': SAMPLE_NOTES}).json()['id']
        ok = client.put(f'/incidents/{incident_id}/category', json={'category': 'Retaliation'})
        assert ok.status_code == 200
        bad = client.put(f'/incidents/{incident_id}/category', json={'category': 'Nope'})
        assert bad.status_code == 400
        missing = client.put('/incidents/missing/category', json={'category': 'Retaliation'})
        assert missing.status_code == 404

    def test_bulk_delete_route(self, client):
        ids = [client.post('/incidents', json={'incident': {'what': f'n{n}'}}).json()['id'] for n in range(2)]
        r = client.post('/incidents/bulk-delete', json={'ids': ids})
        assert r.json() == {'deleted': 2}

    def test_categories_route(self, client):
        assert len(client.get('/categories').json()['groups']) == 4
