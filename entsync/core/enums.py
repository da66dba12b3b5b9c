from enum import Enum


class NodeKind(str, Enum):
    ENTITY = "entity"
    SCHEMA = "schema"
    API_DOC = "api-doc"
    MIGRATION = "migration"
    TEST = "test"
    DOC = "doc"


class StepAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NOOP = "noop"


class FieldType(str, Enum):
    """Field types understood by every built-in generator"""
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    UUID = "uuid"
    JSON = "json"
    ARRAY = "array"


class FieldVisibility(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"
    SECRET = "secret"


class CoherenceStatus(str, Enum):
    CLEAN = "clean"
    PENDING = "pending"
    FIXED = "fixed"


# Artifact kinds, i.e. every kind that maps to a file on disk
OUTPUT_KINDS = frozenset(kind.value for kind in NodeKind if kind is not NodeKind.ENTITY)
