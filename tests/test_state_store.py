"""Tests for engine state persistence."""

import json
import logging

import pytest

from entsync.build.graph_builder import GraphBuilder
from entsync.build.hasher import Fingerprinter
from entsync.build.state_store import StateStore, MANIFEST_FILENAME, GRAPH_FILENAME
from entsync.core.enums import FieldType
from entsync.core.models import EngineState, EntityField, EntityRecord, ManifestEntry
from entsync.generators import default_registry


@pytest.fixture
def store(tmp_path):
    return StateStore(tmp_path, '.entsync')


@pytest.fixture
def graph():
    entity = EntityRecord(
        name='User',
        fields=(EntityField(name='id', type=FieldType.STRING),),
        artifacts=('schema', 'doc'),
    )
    return GraphBuilder(default_registry(), Fingerprinter('1.0'), 'generated').build([entity])


@pytest.fixture
def state():
    return EngineState(entries={
        'schema:User': ManifestEntry('abc', 'generated/schemas/User.schema.json', 'schema', 'User', '2024-01-01T00:00:00+00:00'),
        'doc:User': ManifestEntry('def', 'generated/docs/User.md', 'doc', 'User', '2024-01-01T00:00:00+00:00'),
    })


class TestStateStore:
    """Test suite for StateStore."""

    def test_missing_state_is_empty(self, store):
        state = store.read_state()
        assert state.entries == {}
        assert state.version == 1
        assert store.read_graph() is None

    def test_round_trip(self, store, state, graph):
        store.write(state, graph)

        loaded = store.read_state()
        assert loaded.entries == state.entries
        assert store.read_graph() == json.loads(json.dumps(graph.to_dict()))

    def test_documents_are_normalized(self, store, state, graph, tmp_path):
        store.write(state, graph)

        text = (tmp_path / '.entsync' / MANIFEST_FILENAME).read_text()
        data = json.loads(text)
        assert text.endswith('}\n')
        assert text == json.dumps(data, indent=2, sort_keys=True) + '\n'
        assert list(data['nodes']) == ['doc:User', 'schema:User']
        assert data['version'] == 1
        assert data['nodes']['doc:User'] == {
            'entity': 'User',
            'fingerprint': 'def',
            'kind': 'doc',
            'output_path': 'generated/docs/User.md',
            'written_at': '2024-01-01T00:00:00+00:00',
        }

        snapshot = json.loads((tmp_path / '.entsync' / GRAPH_FILENAME).read_text())
        assert snapshot['version'] == 1
        assert [node['id'] for node in snapshot['nodes']] == ['doc:User', 'entity:User', 'schema:User']

    def test_no_temp_files_left_behind(self, store, state, graph, tmp_path):
        store.write(state, graph)
        store.write(state, graph)
        assert sorted(p.name for p in (tmp_path / '.entsync').iterdir()) == [GRAPH_FILENAME, MANIFEST_FILENAME]

    def test_corrupt_manifest_starts_fresh(self, store, tmp_path, caplog):
        (tmp_path / '.entsync').mkdir()
        (tmp_path / '.entsync' / MANIFEST_FILENAME).write_text('{"version": 1, "nodes": ')

        with caplog.at_level(logging.WARNING):
            state = store.read_state()

        assert state.entries == {}
        assert 'starting fresh' in caplog.text

    def test_version_mismatch_starts_fresh(self, store, tmp_path, caplog):
        (tmp_path / '.entsync').mkdir()
        (tmp_path / '.entsync' / MANIFEST_FILENAME).write_text(json.dumps({'version': 99, 'nodes': {}}))

        with caplog.at_level(logging.WARNING):
            assert store.read_state().entries == {}
        assert 'format version 99' in caplog.text

    def test_malformed_entry_starts_fresh(self, store, tmp_path):
        (tmp_path / '.entsync').mkdir()
        (tmp_path / '.entsync' / MANIFEST_FILENAME).write_text(
            json.dumps({'version': 1, 'nodes': {'schema:User': {'fingerprint': 'x'}}})
        )
        assert store.read_state().entries == {}
