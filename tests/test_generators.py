"""Tests for the built-in artifact generators."""

import json

import pytest

from entsync.core.enums import FieldType, FieldVisibility
from entsync.core.models import EntityField, EntityRecord
from entsync.generators import GENERATED_HEADER, default_registry
from entsync.generators.base import GeneratorRegistry
from entsync.generators.schema import JsonSchemaGenerator


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def account():
    return EntityRecord(
        name='UserAccount',
        description='A registered user',
        fields=(
            EntityField(name='id', type=FieldType.UUID, primary_key=True),
            EntityField(name='email', type=FieldType.STRING, unique=True, max_length=120),
            EntityField(name='nickname', type=FieldType.STRING, optional=True, default='anon'),
            EntityField(name='roles', type=FieldType.ARRAY, items=FieldType.STRING, optional=True),
            EntityField(name='notes', type=FieldType.TEXT, optional=True, visibility=FieldVisibility.INTERNAL),
            EntityField(name='password_hash', type=FieldType.STRING, visibility=FieldVisibility.SECRET),
        ),
        table=True,
    )


def render(registry, kind, entity, **overrides):
    generator = registry.get(kind)
    options = registry.resolve_options(kind, overrides)
    return generator.generate(entity, options)


class TestRegistry:
    """Test suite for GeneratorRegistry."""

    def test_builtin_kinds(self, registry):
        assert registry.kinds() == ['api-doc', 'doc', 'migration', 'schema', 'test']

    def test_duplicate_registration_rejected(self):
        registry = GeneratorRegistry([JsonSchemaGenerator()])
        with pytest.raises(ValueError, match='already registered'):
            registry.register(JsonSchemaGenerator())

    def test_resolve_options_merges_defaults(self, registry):
        assert registry.resolve_options('migration', {'dialect': 'mysql'}) == {'dialect': 'mysql', 'if_not_exists': True}

    @pytest.mark.parametrize('kind', ['schema', 'api-doc', 'migration', 'doc', 'test'])
    def test_output_is_deterministic(self, registry, account, kind):
        first = render(registry, kind, account)
        second = render(registry, kind, account)
        assert first == second
        assert first.content.endswith(b'\n')
        assert GENERATED_HEADER.encode('utf-8') in first.content


class TestJsonSchemaGenerator:

    def test_schema_document(self, registry, account):
        artifact = render(registry, 'schema', account)
        schema = json.loads(artifact.content)

        assert artifact.path == 'schemas/UserAccount.schema.json'
        assert schema['title'] == 'UserAccount'
        assert list(schema['properties']) == sorted(field.name for field in account.fields)
        assert schema['required'] == ['id', 'email', 'password_hash']
        assert schema['properties']['id'] == {'type': 'string', 'format': 'uuid'}
        assert schema['properties']['email']['maxLength'] == 120
        assert schema['properties']['roles'] == {'type': 'array', 'items': {'type': 'string'}}
        assert schema['additionalProperties'] is False


class TestOpenAPIGenerator:

    def test_only_public_fields(self, registry, account):
        artifact = render(registry, 'api-doc', account)
        document = json.loads(artifact.content)

        assert artifact.path == 'openapi/UserAccount.openapi.json'
        assert document['openapi'] == '3.1.0'
        properties = document['components']['schemas']['UserAccount']['properties']
        assert set(properties) == {'id', 'email', 'nickname', 'roles'}

    def test_paths(self, registry, account):
        document = json.loads(render(registry, 'api-doc', account, base_path='/api').content)
        assert set(document['paths']) == {'/api/user_accounts', '/api/user_accounts/{id}'}
        assert document['paths']['/api/user_accounts']['post']['operationId'] == 'createUserAccount'


class TestMigrationGenerator:

    def test_postgres(self, registry, account):
        artifact = render(registry, 'migration', account)
        sql = artifact.content.decode('utf-8')

        assert artifact.path == 'migrations/create_user_account.sql'
        assert 'CREATE TABLE IF NOT EXISTS user_account (' in sql
        assert 'id UUID NOT NULL' in sql
        assert 'email VARCHAR(120) NOT NULL UNIQUE' in sql
        assert "nickname VARCHAR(255) DEFAULT 'anon'" in sql
        assert 'roles JSONB' in sql
        assert 'PRIMARY KEY (id)' in sql

    def test_sqlite(self, registry, account):
        sql = render(registry, 'migration', account, dialect='sqlite', if_not_exists=False).content.decode('utf-8')
        assert 'CREATE TABLE user_account (' in sql
        assert 'id TEXT NOT NULL' in sql
        assert 'email TEXT NOT NULL UNIQUE' in sql

    def test_mysql_types(self, registry, account):
        sql = render(registry, 'migration', account, dialect='mysql').content.decode('utf-8')
        assert 'id CHAR(36) NOT NULL' in sql
        assert 'roles JSON' in sql

    def test_unknown_dialect(self, registry, account):
        with pytest.raises(ValueError, match='oracle'):
            render(registry, 'migration', account, dialect='oracle')

    def test_custom_table_name(self, registry):
        entity = EntityRecord(name='User', fields=(EntityField(name='id', type=FieldType.INTEGER),), table_name='members')
        artifact = render(registry, 'migration', entity)
        assert artifact.path == 'migrations/create_members.sql'


class TestMarkdownDocGenerator:

    def test_secret_fields_hidden(self, registry, account):
        artifact = render(registry, 'doc', account)
        text = artifact.content.decode('utf-8')

        assert artifact.path == 'docs/UserAccount.md'
        assert text.splitlines()[1] == '# UserAccount'
        assert 'A registered user' in text
        assert '`notes`' in text
        assert 'password_hash' not in text
        assert '_1 field(s) not shown._' in text

    def test_public_only(self, registry, account):
        text = render(registry, 'doc', account, include_internal=False).content.decode('utf-8')
        assert '`notes`' not in text
        assert '_2 field(s) not shown._' in text


class TestSmokeTestGenerator:

    def test_smoke_test_module(self, registry, account):
        artifact = render(registry, 'test', account)
        source = artifact.content.decode('utf-8')

        assert artifact.path == 'tests/test_user_account_smoke.py'
        assert 'def test_user_account_schema_exists():' in source
        assert "'UserAccount.schema.json'" in source
        assert "['email', 'id', 'password_hash']" in source
        compile(source, artifact.path, 'exec')
