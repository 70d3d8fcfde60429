"""
tests/test_storage.py
Key-value stores, the SQLite incident store and the config layer.
Everything lives under tmp_path.
"""

import json
import sqlite3

import pytest

from clearcase.config import CONFIG_FILENAME, DEFAULT_CONFIG, ensure_config, load_config, save_config
from clearcase.models.record import ProcessedIncident
from clearcase.storage.incident_store import SCHEMA_VERSION, SqliteIncidentStore
from clearcase.storage.kv_store import JsonFileStore, MemoryStore


@pytest.fixture
def store(tmp_path):
    return SqliteIncidentStore(tmp_path / 'clearcase.db')


# ── KEY-VALUE STORES ─────────────────────────────────────────

class TestKeyValueStores:

    def test_memory_store(self):
        kv = MemoryStore({'a': '1'})
        kv.set('b', '2')
        kv.delete('a')
        kv.delete('missing')
        assert kv.get('a') is None
        assert kv.get('b') == '2'

    def test_json_file_store_persists(self, tmp_path):
        path = tmp_path / 'sub' / 'kv.json'
        JsonFileStore(path).set('k', 'v')
        assert JsonFileStore(path).get('k') == 'v'

    def test_corrupt_file_reads_empty_and_is_replaced(self, tmp_path):
        path = tmp_path / 'kv.json'
        path.write_text('{broken', encoding='utf-8')
        kv = JsonFileStore(path)
        assert kv.get('k') is None
        kv.set('k', 'v')
        assert json.loads(path.read_text()) == {'k': 'v'}

    def test_non_string_values_ignored(self, tmp_path):
        path = tmp_path / 'kv.json'
        path.write_text(json.dumps({'n': 5, 's': 'ok'}), encoding='utf-8')
        kv = JsonFileStore(path)
        assert kv.get('n') is None
        assert kv.get('s') == 'ok'


# ── INCIDENT STORE ───────────────────────────────────────────

class TestSqliteIncidentStore:

    def test_save_assigns_id_and_timestamps(self, store):
        original = ProcessedIncident(what='x', case_number='AB-12')
        saved    = store.save(original)
        assert saved.id
        assert saved.created_at and saved.updated_at
        assert original.id == ''   # input untouched

    def test_round_trip(self, store):
        saved = store.save(ProcessedIncident(
            what                 = 'Jane yelled',
            category_or_issue    = 'Harassment (Verbal, Physical, Sexual)',
            canonical_event_date = '2024-07-22',
            incident_key         = 'abc123',
            files                = ['a.jpg'],
        ))
        assert store.get_by_id(saved.id) == saved

    def test_resave_keeps_created_at(self, store):
        saved   = store.save(ProcessedIncident(what='v1'))
        saved.what = 'v2'
        resaved = store.save(saved)
        assert resaved.created_at == saved.created_at
        assert store.get_by_id(saved.id).what == 'v2'
        assert len(store.get_all()) == 1

    def test_get_all_newest_first(self, store):
        store.save(ProcessedIncident(id='old', created_at='2024-01-01T00:00:00+00:00'))
        store.save(ProcessedIncident(id='new', created_at='2024-06-01T00:00:00+00:00'))
        assert [i.id for i in store.get_all()] == ['new', 'old']

    def test_delete(self, store):
        saved = store.save(ProcessedIncident(what='x'))
        assert store.delete(saved.id) is True
        assert store.delete(saved.id) is False
        assert store.get_by_id(saved.id) is None

    def test_delete_many(self, store):
        ids = [store.save(ProcessedIncident(what=str(n))).id for n in range(3)]
        assert store.delete_many(ids[:2] + ['missing']) == 2
        assert [i.id for i in store.get_all()] == [ids[2]]
        assert store.delete_many([]) == 0

    def test_schema_version_and_search_columns(self, store):
        saved = store.save(ProcessedIncident(case_number='AB-12'))
        conn  = sqlite3.connect(store.db_path)
        try:
            version = conn.execute(
                "SELECT value FROM clearcase_meta WHERE key = 'schema_version'"
            ).fetchone()[0]
            norm = conn.execute(
                "SELECT case_number_norm FROM incidents WHERE id = ?", (saved.id,)
            ).fetchone()[0]
        finally:
            conn.close()
        assert version == SCHEMA_VERSION
        assert norm    == 'ab12'


# ── CONFIG ───────────────────────────────────────────────────

class TestConfig:

    def test_ensure_config_writes_defaults(self, tmp_path):
        config = ensure_config(tmp_path)
        assert (tmp_path / CONFIG_FILENAME).exists()
        assert config['db_path'] == str(tmp_path / 'clearcase.db')
        assert config['api_port'] == DEFAULT_CONFIG['api_port']

    def test_corrupt_config_uses_defaults(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('not json', encoding='utf-8')
        assert load_config(tmp_path)['debounce_ms'] == DEFAULT_CONFIG['debounce_ms']

    def test_saved_values_win_over_defaults(self, tmp_path):
        save_config({'organizer_url': 'http://localhost:9000/organize'}, tmp_path)
        config = load_config(tmp_path)
        assert config['organizer_url'] == 'http://localhost:9000/organize'
        assert config['parse_cache_size'] == DEFAULT_CONFIG['parse_cache_size']

    def test_environment_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv('CLEARCASE_API_PORT', '9000')
        monkeypatch.setenv('CLEARCASE_USE_REMOTE_ORGANIZER', 'true')
        monkeypatch.setenv('CLEARCASE_PARSE_CACHE_SIZE', 'lots')
        config = load_config(tmp_path)
        assert config['api_port'] == 9000
        assert config['use_remote_organizer'] is True
        assert config['parse_cache_size'] == DEFAULT_CONFIG['parse_cache_size']
