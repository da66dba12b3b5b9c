import re
import yaml
from typing import Dict, Any, List, Optional, Tuple

from ..core.enums import FieldType, FieldVisibility, NodeKind
from ..core.exceptions import LoadError
from ..core.models import EntityField, EntityRecord


_NAME_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9_]*$')

_FIELD_KEYS = {
    'name', 'type', 'optional', 'visibility', 'description', 'default',
    'primary_key', 'unique', 'max_length', 'items',
}

_ENTITY_KEYS = {
    'name', 'fields', 'artifacts', 'doc', 'description', 'table',
    'table_name', 'test', 'openapi',
}


class EntityLoader:
    """Load and validate entity definitions"""

    @staticmethod
    def load_from_yaml(file_path: str) -> List[EntityRecord]:
        """
        Load every entity defined in a YAML file.

        A file holds either a single entity mapping, an `entities:` list, or a
        top-level list of entity mappings.
        """
        try:
            with open(file_path, 'r') as file:
                document = yaml.safe_load(file)
        except OSError as e:
            raise LoadError(f"Cannot read entity file: {e}", file_path) from e
        except yaml.YAMLError as e:
            raise LoadError(f"Invalid YAML: {e}", file_path) from e

        if document is None:
            raise LoadError("Empty entity file", file_path)

        if isinstance(document, dict) and 'entities' in document and 'name' not in document:
            definitions = document['entities']
        elif isinstance(document, list):
            definitions = document
        else:
            definitions = [document]

        if not isinstance(definitions, list) or not definitions:
            raise LoadError("No entity defined", file_path)

        return [EntityLoader.load_from_dict(item, source_path=file_path) for item in definitions]

    @staticmethod
    def load_from_dict(entity_dict: Dict[str, Any], source_path: Optional[str] = None) -> EntityRecord:
        """Build an EntityRecord from a dictionary"""
        if not isinstance(entity_dict, dict):
            raise LoadError("Entity definition must be a mapping", source_path)

        unknown = sorted(set(entity_dict) - _ENTITY_KEYS)
        if unknown:
            raise LoadError(f"Unknown entity keys: {', '.join(unknown)}", source_path)

        name = entity_dict.get('name')
        if not isinstance(name, str) or not _NAME_PATTERN.match(name):
            raise LoadError(f"Invalid entity name: {name!r}", source_path)

        fields = EntityLoader._process_fields(name, entity_dict.get('fields'), source_path)

        table = bool(entity_dict.get('table', False))
        doc = bool(entity_dict.get('doc', False))

        if 'artifacts' in entity_dict:
            artifacts = entity_dict['artifacts']
            if not isinstance(artifacts, list) or not all(isinstance(kind, str) for kind in artifacts):
                raise LoadError(f"'artifacts' of {name} must be a list of kind names", source_path)
            artifacts = tuple(dict.fromkeys(artifacts))
        else:
            artifacts = EntityLoader._artifacts_from_flags(entity_dict, table, doc)

        table_name = entity_dict.get('table_name')
        if table_name is not None and not isinstance(table_name, str):
            raise LoadError(f"'table_name' of {name} must be a string", source_path)

        return EntityRecord(
            name=name,
            fields=fields,
            artifacts=artifacts,
            doc=doc,
            description=entity_dict.get('description'),
            table=table,
            table_name=table_name,
            source_path=str(source_path) if source_path is not None else None,
        )

    @staticmethod
    def _artifacts_from_flags(entity_dict: Dict[str, Any], table: bool, doc: bool) -> Tuple[str, ...]:
        """Derive enabled artifact kinds from the entity's generation flags"""
        kinds = [NodeKind.SCHEMA.value]
        if entity_dict.get('openapi', True):
            kinds.append(NodeKind.API_DOC.value)
        if table:
            kinds.append(NodeKind.MIGRATION.value)
        if doc:
            kinds.append(NodeKind.DOC.value)
        if entity_dict.get('test') == 'smoke':
            kinds.append(NodeKind.TEST.value)
        return tuple(kinds)

    @staticmethod
    def _process_fields(entity_name: str, raw_fields: Any, source_path: Optional[str]) -> Tuple[EntityField, ...]:
        """Normalize mapping or list field declarations, preserving order"""
        if isinstance(raw_fields, dict):
            items = []
            for field_name, declaration in raw_fields.items():
                if isinstance(declaration, str):
                    declaration = {'type': declaration}
                elif declaration is None or not isinstance(declaration, dict):
                    raise LoadError(f"Field {entity_name}.{field_name} must be a type name or a mapping", source_path)
                items.append({**declaration, 'name': field_name})
        elif isinstance(raw_fields, list):
            items = raw_fields
        else:
            raise LoadError(f"Entity {entity_name} must declare its fields", source_path)

        if not items:
            raise LoadError(f"Entity {entity_name} has no fields", source_path)

        fields = []
        seen = set()
        for item in items:
            field = EntityLoader._process_field(entity_name, item, source_path)
            if field.name in seen:
                raise LoadError(f"Duplicate field {entity_name}.{field.name}", source_path)
            seen.add(field.name)
            fields.append(field)

        return tuple(fields)

    @staticmethod
    def _process_field(entity_name: str, field_dict: Any, source_path: Optional[str]) -> EntityField:
        if not isinstance(field_dict, dict):
            raise LoadError(f"Field declarations of {entity_name} must be mappings", source_path)

        field_name = field_dict.get('name')
        if not isinstance(field_name, str) or not _NAME_PATTERN.match(field_name):
            raise LoadError(f"Invalid field name in {entity_name}: {field_name!r}", source_path)

        unknown = sorted(set(field_dict) - _FIELD_KEYS)
        if unknown:
            raise LoadError(f"Unknown keys on field {entity_name}.{field_name}: {', '.join(unknown)}", source_path)

        try:
            field_type = FieldType(field_dict.get('type'))
            visibility = FieldVisibility(field_dict.get('visibility', FieldVisibility.PUBLIC.value))
            items = FieldType(field_dict['items']) if field_dict.get('items') else None
        except ValueError as e:
            raise LoadError(f"Field {entity_name}.{field_name}: {e}", source_path) from e

        if field_type == FieldType.ARRAY and items is None:
            raise LoadError(f"Array field {entity_name}.{field_name} must declare 'items'", source_path)

        max_length = field_dict.get('max_length')
        if max_length is not None and (not isinstance(max_length, int) or max_length <= 0):
            raise LoadError(f"Field {entity_name}.{field_name}: max_length must be a positive integer", source_path)

        return EntityField(
            name=field_name,
            type=field_type,
            optional=bool(field_dict.get('optional', False)),
            visibility=visibility,
            description=field_dict.get('description'),
            default=field_dict.get('default'),
            primary_key=bool(field_dict.get('primary_key', False)),
            unique=bool(field_dict.get('unique', False)),
            max_length=max_length,
            items=items,
        )
