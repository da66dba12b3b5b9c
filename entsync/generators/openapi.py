import json
from typing import Any, Dict, Optional

from ..core.enums import NodeKind
from ..core.models import EntityField, EntityRecord
from ..utils.naming import to_snake_case
from .base import ArtifactGenerator, GENERATED_HEADER
from .schema import field_json_schema, object_json_schema


class OpenAPIGenerator(ArtifactGenerator):
    """
    API description fragment for one entity.

    Only public fields are exposed. A collection path (list/create) is always
    emitted; an item path is emitted when the entity has a primary key field.
    """

    kind = NodeKind.API_DOC.value
    default_options = {'api_version': '1.0.0', 'base_path': ''}

    def output_path(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        return f"openapi/{entity.name}.openapi.json"

    def render(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        public_fields = entity.public_fields()
        schema_ref = {'$ref': f"#/components/schemas/{entity.name}"}
        collection = f"{options.get('base_path') or ''}/{to_snake_case(entity.name)}s"
        tag = entity.name

        paths: Dict[str, Any] = {
            collection: {
                'get': {
                    'operationId': f"list{entity.name}",
                    'tags': [tag],
                    'responses': {
                        '200': {
                            'description': f"List of {entity.name}",
                            'content': {'application/json': {'schema': {'type': 'array', 'items': schema_ref}}},
                        },
                    },
                },
                'post': {
                    'operationId': f"create{entity.name}",
                    'tags': [tag],
                    'requestBody': {
                        'required': True,
                        'content': {'application/json': {'schema': schema_ref}},
                    },
                    'responses': {
                        '201': {
                            'description': f"{entity.name} created",
                            'content': {'application/json': {'schema': schema_ref}},
                        },
                    },
                },
            },
        }

        key = self._primary_key(entity)
        if key is not None and key in public_fields:
            paths[f"{collection}/{{{key.name}}}"] = {
                'get': {
                    'operationId': f"get{entity.name}",
                    'tags': [tag],
                    'parameters': [{
                        'name': key.name,
                        'in': 'path',
                        'required': True,
                        'schema': field_json_schema(key),
                    }],
                    'responses': {
                        '200': {
                            'description': f"A single {entity.name}",
                            'content': {'application/json': {'schema': schema_ref}},
                        },
                        '404': {'description': f"{entity.name} not found"},
                    },
                },
            }

        document = {
            'openapi': '3.1.0',
            'info': {
                'title': f"{entity.name} API",
                'version': str(options.get('api_version')),
                'description': entity.description or f"Operations on {entity.name}",
            },
            'paths': paths,
            'components': {
                'schemas': {
                    entity.name: object_json_schema(entity, public_fields, additional_properties=False),
                },
            },
            'x-generated': GENERATED_HEADER,
        }
        return json.dumps(document, indent=2, sort_keys=True, default=str)

    def _primary_key(self, entity: EntityRecord) -> Optional[EntityField]:
        for field in entity.fields:
            if field.primary_key:
                return field
        for field in entity.fields:
            if field.name == 'id':
                return field
        return None
