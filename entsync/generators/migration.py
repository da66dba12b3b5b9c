from typing import Any, Dict, List

from ..core.enums import FieldType, NodeKind
from ..core.models import EntityField, EntityRecord
from .base import ArtifactGenerator, GENERATED_HEADER


_DIALECT_TYPES: Dict[str, Dict[FieldType, str]] = {
    'postgres': {
        FieldType.STRING: 'VARCHAR(255)',
        FieldType.TEXT: 'TEXT',
        FieldType.INTEGER: 'INTEGER',
        FieldType.NUMBER: 'DOUBLE PRECISION',
        FieldType.BOOLEAN: 'BOOLEAN',
        FieldType.DATE: 'DATE',
        FieldType.DATETIME: 'TIMESTAMP',
        FieldType.UUID: 'UUID',
        FieldType.JSON: 'JSONB',
        FieldType.ARRAY: 'JSONB',
    },
    'mysql': {
        FieldType.STRING: 'VARCHAR(255)',
        FieldType.TEXT: 'TEXT',
        FieldType.INTEGER: 'INT',
        FieldType.NUMBER: 'DOUBLE',
        FieldType.BOOLEAN: 'TINYINT(1)',
        FieldType.DATE: 'DATE',
        FieldType.DATETIME: 'DATETIME',
        FieldType.UUID: 'CHAR(36)',
        FieldType.JSON: 'JSON',
        FieldType.ARRAY: 'JSON',
    },
    'sqlite': {
        FieldType.STRING: 'TEXT',
        FieldType.TEXT: 'TEXT',
        FieldType.INTEGER: 'INTEGER',
        FieldType.NUMBER: 'REAL',
        FieldType.BOOLEAN: 'INTEGER',
        FieldType.DATE: 'TEXT',
        FieldType.DATETIME: 'TEXT',
        FieldType.UUID: 'TEXT',
        FieldType.JSON: 'TEXT',
        FieldType.ARRAY: 'TEXT',
    },
}


class MigrationGenerator(ArtifactGenerator):
    """CREATE TABLE migration script for entities backed by a table"""

    kind = NodeKind.MIGRATION.value
    default_options = {'dialect': 'postgres', 'if_not_exists': True}

    def output_path(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        return f"migrations/create_{entity.resolved_table_name}.sql"

    def render(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        dialect = options.get('dialect', 'postgres')
        if dialect not in _DIALECT_TYPES:
            raise ValueError(f"Unsupported migration dialect: {dialect}")

        if_not_exists_clause = "IF NOT EXISTS " if options.get('if_not_exists') else ""

        columns = [self._column_definition(field, dialect) for field in entity.fields]

        primary_keys = [field.name for field in entity.fields if field.primary_key]
        if primary_keys:
            columns.append(f"PRIMARY KEY ({', '.join(primary_keys)})")

        columns_str = ',\n  '.join(columns)
        return (
            f"-- {GENERATED_HEADER}\n"
            f"-- Entity: {entity.name} ({dialect})\n"
            f"CREATE TABLE {if_not_exists_clause}{entity.resolved_table_name} (\n"
            f"  {columns_str}\n"
            f");\n"
        )

    def _column_definition(self, field: EntityField, dialect: str) -> str:
        col_type = _DIALECT_TYPES[dialect][field.type]
        if field.max_length is not None and field.type == FieldType.STRING and dialect != 'sqlite':
            col_type = f"VARCHAR({field.max_length})"

        parts: List[str] = [field.name, col_type]
        if not field.optional:
            parts.append("NOT NULL")
        if field.unique and not field.primary_key:
            parts.append("UNIQUE")
        if field.default is not None:
            parts.append(f"DEFAULT {self._literal(field.default)}")
        return " ".join(parts)

    def _literal(self, value: Any) -> str:
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, (int, float)):
            return str(value)
        escaped = str(value).replace("'", "''")
        return f"'{escaped}'"
