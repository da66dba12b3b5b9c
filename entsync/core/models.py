from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from .enums import FieldType, FieldVisibility, NodeKind, StepAction, OUTPUT_KINDS
from .exceptions import ValidationError
from ..utils.naming import to_snake_case


STATE_FORMAT_VERSION = 1


@dataclass(frozen=True)
class EntityField:
    """One typed field of an entity"""
    name: str
    type: FieldType
    optional: bool = False
    visibility: FieldVisibility = FieldVisibility.PUBLIC
    description: Optional[str] = None
    default: Any = None
    primary_key: bool = False
    unique: bool = False
    max_length: Optional[int] = None
    items: Optional[FieldType] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'name': self.name,
            'type': self.type.value,
            'optional': self.optional,
            'visibility': self.visibility.value,
            'description': self.description,
            'default': self.default,
            'primary_key': self.primary_key,
            'unique': self.unique,
            'max_length': self.max_length,
            'items': self.items.value if self.items else None,
        }


@dataclass(frozen=True)
class EntityRecord:
    """A loaded entity definition. Immutable for the lifetime of a cycle."""
    name: str
    fields: Tuple[EntityField, ...] = ()
    artifacts: Tuple[str, ...] = ()
    doc: bool = False
    description: Optional[str] = None
    table: bool = False
    table_name: Optional[str] = None
    source_path: Optional[str] = None

    @property
    def resolved_table_name(self) -> str:
        return self.table_name or to_snake_case(self.name)

    def public_fields(self) -> List[EntityField]:
        return [f for f in self.fields if f.visibility == FieldVisibility.PUBLIC]

    def documented_fields(self) -> List[EntityField]:
        return [f for f in self.fields if f.visibility != FieldVisibility.SECRET]

    def content_dict(self) -> Dict[str, Any]:
        """
        Content that artifacts are derived from.

        Generation flags and the source location are left out so that toggling
        one artifact kind, or moving the source file, does not invalidate the
        other artifacts of the entity.
        """
        return {
            'name': self.name,
            'description': self.description,
            'table_name': self.resolved_table_name,
            'fields': [f.to_dict() for f in self.fields],
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = self.content_dict()
        data.update({
            'artifacts': list(self.artifacts),
            'doc': self.doc,
            'table': self.table,
            'source_path': self.source_path,
        })
        return data


@dataclass(frozen=True)
class GeneratedArtifact:
    """Output of one generator call"""
    content: bytes
    path: str


@dataclass
class Node:
    """One unit of the dependency graph: an entity or one derived artifact"""
    id: str
    kind: str
    fingerprint: str
    entity: str
    depends_on: List[str] = field(default_factory=list)
    output_path: Optional[str] = None
    generator_ref: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_artifact(self) -> bool:
        return self.kind in OUTPUT_KINDS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)


@dataclass(frozen=True)
class Edge:
    source: str
    target: str

    def to_dict(self) -> Dict[str, str]:
        return {'from': self.source, 'to': self.target}


@dataclass
class Graph:
    """Nodes of one cycle plus the entity records they were built from"""
    nodes: Dict[str, Node] = field(default_factory=dict)
    entities: Dict[str, EntityRecord] = field(default_factory=dict)
    engine_version: Optional[str] = None

    def add_node(self, node: Node) -> None:
        if node.id in self.nodes:
            raise ValidationError(f"Duplicate node id in graph: {node.id}")
        self.nodes[node.id] = node

    def get(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def sorted_nodes(self) -> List[Node]:
        return [self.nodes[node_id] for node_id in sorted(self.nodes)]

    def artifact_nodes(self) -> List[Node]:
        return [node for node in self.sorted_nodes() if node.is_artifact]

    def entity_for(self, node: Node) -> EntityRecord:
        return self.entities[node.entity]

    @property
    def edges(self) -> List[Edge]:
        edges = [
            Edge(source=dependency, target=node.id)
            for node in self.nodes.values()
            for dependency in node.depends_on
        ]
        return sorted(edges, key=lambda edge: (edge.source, edge.target))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the graph snapshot document"""
        return {
            'version': STATE_FORMAT_VERSION,
            'engine_version': self.engine_version,
            'nodes': [node.to_dict() for node in self.sorted_nodes()],
            'edges': [edge.to_dict() for edge in self.edges],
        }


@dataclass
class ManifestEntry:
    """Persisted record of one artifact as of the last successful cycle"""
    fingerprint: str
    output_path: str
    kind: str
    entity: str
    written_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ManifestEntry':
        """Create from dictionary"""
        return cls(
            fingerprint=data['fingerprint'],
            output_path=data['output_path'],
            kind=data['kind'],
            entity=data['entity'],
            written_at=data.get('written_at'),
        )


@dataclass
class EngineState:
    """Durable snapshot: node id -> manifest entry"""
    entries: Dict[str, ManifestEntry] = field(default_factory=dict)
    version: int = STATE_FORMAT_VERSION

    def copy(self) -> 'EngineState':
        return EngineState(
            entries={node_id: ManifestEntry(**entry.to_dict()) for node_id, entry in self.entries.items()},
            version=self.version,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the manifest document"""
        return {
            'version': self.version,
            'nodes': {node_id: self.entries[node_id].to_dict() for node_id in sorted(self.entries)},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineState':
        """Create from the manifest document"""
        nodes = data.get('nodes') or {}
        return cls(
            entries={node_id: ManifestEntry.from_dict(entry) for node_id, entry in nodes.items()},
            version=data.get('version', STATE_FORMAT_VERSION),
        )


@dataclass
class Step:
    """One planned operation against one artifact node"""
    node: Node
    action: StepAction
    reason: str
    previous: Optional[ManifestEntry] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.node.id,
            'kind': self.node.kind,
            'action': self.action.value,
            'path': self.node.output_path,
            'reason': self.reason,
        }


@dataclass
class PlanSummary:
    create: int = 0
    update: int = 0
    delete: int = 0
    noop: int = 0

    @property
    def total(self) -> int:
        return self.create + self.update + self.delete + self.noop

    @property
    def changed(self) -> bool:
        return self.create + self.update + self.delete > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'create': self.create,
            'update': self.update,
            'delete': self.delete,
            'noop': self.noop,
            'total': self.total,
            'changed': self.changed,
        }


@dataclass
class Plan:
    steps: List[Step] = field(default_factory=list)
    summary: PlanSummary = field(default_factory=PlanSummary)

    @property
    def changed(self) -> bool:
        return self.summary.changed

    def actionable_steps(self) -> List[Step]:
        return [step for step in self.steps if step.action != StepAction.NOOP]


@dataclass
class StepResult:
    """Outcome of one applied step"""
    node_id: str
    kind: str
    action: StepAction
    path: Optional[str]
    changed: bool

    def to_event(self) -> Dict[str, Any]:
        """Progress payload handed to logging/UI layers"""
        return {
            'id': self.node_id,
            'kind': self.kind,
            'action': self.action.value,
            'path': self.path,
            'changed': self.changed,
        }


def entity_node_id(entity_name: str) -> str:
    return f"{NodeKind.ENTITY.value}:{entity_name}"


def artifact_node_id(kind: str, entity_name: str) -> str:
    return f"{kind}:{entity_name}"
