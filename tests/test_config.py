"""Tests for engine configuration loading."""

import pytest

from entsync.config.global_config_loader import EngineConfig, find_config_file, load_engine_config
from entsync.core.exceptions import LoadError
from entsync.version import __version__

from conftest import write_file


class TestEngineConfig:
    """Test suite for EngineConfig."""

    def test_defaults_when_no_file(self, tmp_path):
        config = load_engine_config(tmp_path)
        assert config.entities.paths == ['entities']
        assert config.out_dir == 'generated'
        assert config.state_dir == '.entsync'
        assert config.engine_version == __version__
        assert config.watch.debounce_ms == 150
        assert config.config_path is None

    def test_load_from_yaml(self, tmp_path):
        write_file(tmp_path / 'entsync.yaml', """
            entities:
              paths: [model]
            out_dir: build/generated
            engine_version: "2.0"
            artifacts:
              doc: false
            generators:
              migration:
                dialect: sqlite
            watch:
              debounce_ms: 50
            logging:
              level: DEBUG
        """)
        config = load_engine_config(tmp_path)

        assert config.entities.paths == ['model']
        assert config.entities.patterns == ['*.entity.yaml', '*.entity.yml']
        assert config.out_dir == 'build/generated'
        assert config.engine_version == '2.0'
        assert config.disabled_kinds == ['doc']
        assert config.generators == {'migration': {'dialect': 'sqlite'}}
        assert config.watch.debounce_ms == 50
        assert config.logging.level == 'DEBUG'
        assert config.config_path == str(tmp_path / 'entsync.yaml')

    def test_short_entities_form(self):
        config = EngineConfig.from_dict({'entities': ['a', 'b']})
        assert config.entities.paths == ['a', 'b']

    def test_unknown_artifact_kind(self, tmp_path):
        write_file(tmp_path / 'entsync.yaml', "artifacts:\n  graphql: true\n")
        with pytest.raises(LoadError, match='graphql'):
            load_engine_config(tmp_path)

    def test_absolute_out_dir_rejected(self, tmp_path):
        write_file(tmp_path / 'entsync.yaml', "out_dir: /tmp/out\n")
        with pytest.raises(LoadError, match='out_dir'):
            load_engine_config(tmp_path)

    def test_malformed_yaml(self, tmp_path):
        write_file(tmp_path / 'entsync.yaml', "entities: [unclosed\n")
        with pytest.raises(LoadError, match='Invalid engine configuration'):
            load_engine_config(tmp_path)

    def test_non_mapping_document(self, tmp_path):
        write_file(tmp_path / 'entsync.yaml', "- a\n- b\n")
        with pytest.raises(LoadError):
            load_engine_config(tmp_path)

    def test_explicit_missing_config(self, tmp_path):
        with pytest.raises(LoadError, match='Config file not found'):
            load_engine_config(tmp_path, 'custom.yaml')

    def test_explicit_config_path(self, tmp_path):
        write_file(tmp_path / 'conf' / 'custom.yaml', "out_dir: out\n")
        config = load_engine_config(tmp_path, 'conf/custom.yaml')
        assert config.out_dir == 'out'

    def test_find_config_file_order(self, tmp_path):
        write_file(tmp_path / 'config' / 'entsync.yaml', "out_dir: a\n")
        assert find_config_file(tmp_path) == tmp_path / 'config' / 'entsync.yaml'
        write_file(tmp_path / 'entsync.yml', "out_dir: b\n")
        assert find_config_file(tmp_path) == tmp_path / 'entsync.yml'
