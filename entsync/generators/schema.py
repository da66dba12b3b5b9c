import json
from typing import Any, Dict, List

from ..core.enums import FieldType, NodeKind
from ..core.models import EntityField, EntityRecord
from .base import ArtifactGenerator, GENERATED_HEADER


_TYPE_MAPPING: Dict[FieldType, Dict[str, Any]] = {
    FieldType.STRING: {'type': 'string'},
    FieldType.TEXT: {'type': 'string'},
    FieldType.INTEGER: {'type': 'integer'},
    FieldType.NUMBER: {'type': 'number'},
    FieldType.BOOLEAN: {'type': 'boolean'},
    FieldType.DATE: {'type': 'string', 'format': 'date'},
    FieldType.DATETIME: {'type': 'string', 'format': 'date-time'},
    FieldType.UUID: {'type': 'string', 'format': 'uuid'},
    FieldType.JSON: {},
}


def field_json_schema(field: EntityField) -> Dict[str, Any]:
    """JSON Schema fragment for one entity field"""
    if field.type == FieldType.ARRAY:
        schema: Dict[str, Any] = {'type': 'array', 'items': dict(_TYPE_MAPPING.get(field.items, {}))}
    else:
        schema = dict(_TYPE_MAPPING[field.type])

    if field.max_length is not None and field.type in (FieldType.STRING, FieldType.TEXT):
        schema['maxLength'] = field.max_length
    if field.description:
        schema['description'] = field.description
    if field.default is not None:
        schema['default'] = field.default
    return schema


def object_json_schema(entity: EntityRecord, fields: List[EntityField], additional_properties: bool) -> Dict[str, Any]:
    """JSON Schema object describing the given fields of an entity"""
    schema: Dict[str, Any] = {
        'type': 'object',
        'title': entity.name,
        'properties': {field.name: field_json_schema(field) for field in fields},
        'additionalProperties': additional_properties,
    }
    required = [field.name for field in fields if not field.optional]
    if required:
        schema['required'] = required
    if entity.description:
        schema['description'] = entity.description
    return schema


class JsonSchemaGenerator(ArtifactGenerator):
    """Validation schema (JSON Schema 2020-12) covering every field of the entity"""

    kind = NodeKind.SCHEMA.value
    default_options = {'additional_properties': False}

    def output_path(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        return f"schemas/{entity.name}.schema.json"

    def render(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        schema = object_json_schema(entity, list(entity.fields), bool(options.get('additional_properties')))
        schema['$schema'] = 'https://json-schema.org/draft/2020-12/schema'
        schema['$id'] = self.output_path(entity, options)
        schema['$comment'] = GENERATED_HEADER
        return json.dumps(schema, indent=2, sort_keys=True, default=str)
