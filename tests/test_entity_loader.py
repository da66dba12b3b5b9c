"""Tests for entity definition loading."""

import pytest

from entsync.config.entity_loader import EntityLoader
from entsync.config.global_config_loader import EngineConfig
from entsync.config.scanner import YamlSourceLoader
from entsync.core.enums import FieldType, FieldVisibility
from entsync.core.exceptions import LoadError

from conftest import write_file


class TestEntityLoader:
    """Test suite for EntityLoader."""

    def test_mapping_fields_keep_declaration_order(self):
        record = EntityLoader.load_from_dict({
            'name': 'User',
            'fields': {
                'id': {'type': 'uuid', 'primary_key': True},
                'email': 'string',
                'bio': {'type': 'text', 'optional': True},
            },
        })
        assert [field.name for field in record.fields] == ['id', 'email', 'bio']
        assert record.fields[0].type == FieldType.UUID
        assert record.fields[0].primary_key is True
        assert record.fields[2].optional is True

    def test_list_fields(self):
        record = EntityLoader.load_from_dict({
            'name': 'Tag',
            'fields': [
                {'name': 'label', 'type': 'string', 'max_length': 40},
                {'name': 'token', 'type': 'string', 'visibility': 'secret'},
            ],
        })
        assert record.fields[0].max_length == 40
        assert record.fields[1].visibility == FieldVisibility.SECRET

    def test_default_artifacts_from_flags(self):
        record = EntityLoader.load_from_dict({'name': 'User', 'fields': {'id': 'string'}})
        assert record.artifacts == ('schema', 'api-doc')

    def test_all_flags(self):
        record = EntityLoader.load_from_dict({
            'name': 'User',
            'table': True,
            'doc': True,
            'test': 'smoke',
            'openapi': False,
            'fields': {'id': 'string'},
        })
        assert record.artifacts == ('schema', 'migration', 'doc', 'test')
        assert record.table is True
        assert record.doc is True

    def test_explicit_artifacts_are_kept_verbatim(self):
        record = EntityLoader.load_from_dict({
            'name': 'User',
            'artifacts': ['doc', 'schema', 'doc', 'graphql'],
            'fields': {'id': 'string'},
        })
        assert record.artifacts == ('doc', 'schema', 'graphql')

    def test_array_requires_items(self):
        with pytest.raises(LoadError, match="items"):
            EntityLoader.load_from_dict({'name': 'User', 'fields': {'roles': {'type': 'array'}}})

    def test_array_with_items(self):
        record = EntityLoader.load_from_dict({'name': 'User', 'fields': {'roles': {'type': 'array', 'items': 'string'}}})
        assert record.fields[0].items == FieldType.STRING

    @pytest.mark.parametrize('definition, message', [
        ({'name': 'User', 'fields': {'id': 'varchar'}}, 'varchar'),
        ({'name': 'User', 'fields': {}}, 'no fields'),
        ({'name': 'User'}, 'must declare its fields'),
        ({'name': '1User', 'fields': {'id': 'string'}}, 'Invalid entity name'),
        ({'name': 'User', 'colour': 'red', 'fields': {'id': 'string'}}, 'Unknown entity keys: colour'),
        ({'name': 'User', 'fields': {'id': {'type': 'string', 'size': 3}}}, 'Unknown keys on field User.id: size'),
        ({'name': 'User', 'fields': {'id': {'type': 'string', 'max_length': 0}}}, 'max_length'),
        ({'name': 'User', 'fields': [{'name': 'id', 'type': 'string'}, {'name': 'id', 'type': 'uuid'}]}, 'Duplicate field'),
    ])
    def test_invalid_definitions(self, definition, message):
        with pytest.raises(LoadError, match=message):
            EntityLoader.load_from_dict(definition, source_path='entities/User.entity.yaml')

    def test_error_carries_path(self):
        with pytest.raises(LoadError) as exc_info:
            EntityLoader.load_from_dict({'name': 'User', 'fields': {}}, source_path='entities/User.entity.yaml')
        assert exc_info.value.path == 'entities/User.entity.yaml'
        assert str(exc_info.value).startswith('entities/User.entity.yaml: ')


class TestLoadFromYaml:
    """Test suite for reading entity files."""

    def test_single_entity_file(self, tmp_path):
        path = write_file(tmp_path / 'User.entity.yaml', """
            name: User
            fields:
              id: string
        """)
        records = EntityLoader.load_from_yaml(str(path))
        assert [record.name for record in records] == ['User']

    def test_entities_list_file(self, tmp_path):
        path = write_file(tmp_path / 'all.entity.yaml', """
            entities:
              - name: User
                fields:
                  id: string
              - name: Post
                fields:
                  title: string
        """)
        assert [record.name for record in EntityLoader.load_from_yaml(str(path))] == ['User', 'Post']

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.entity.yaml'
        path.write_text('')
        with pytest.raises(LoadError, match='Empty entity file'):
            EntityLoader.load_from_yaml(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'broken.entity.yaml'
        path.write_text('name: [unclosed\n')
        with pytest.raises(LoadError, match='Invalid YAML'):
            EntityLoader.load_from_yaml(str(path))


class TestYamlSourceLoader:
    """Test suite for scanning a project's entity directories."""

    def test_scans_recursively_and_sorts(self, project):
        write_file(project / 'entities' / 'users' / 'User.entity.yaml', "name: User\nfields:\n  id: string\n")
        write_file(project / 'entities' / 'Account.entity.yml', "name: Account\nfields:\n  id: string\n")
        write_file(project / 'entities' / 'notes.txt', "not an entity")

        records = YamlSourceLoader().load(project, EngineConfig.default())

        assert [(record.source_path, record.name) for record in records] == [
            ('entities/Account.entity.yml', 'Account'),
            ('entities/users/User.entity.yaml', 'User'),
        ]

    def test_missing_entity_dir(self, tmp_path):
        with pytest.raises(LoadError, match='Entity path does not exist'):
            YamlSourceLoader().load(tmp_path, EngineConfig.default())
