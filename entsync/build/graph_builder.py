"""
Builds the dependency graph of one cycle from loaded entity records.
"""
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Optional
import logging

from ..core.enums import NodeKind
from ..core.exceptions import ValidationError
from ..core.models import EntityRecord, Graph, Node, entity_node_id, artifact_node_id
from ..generators.base import GeneratorRegistry
from .hasher import Fingerprinter


class GraphBuilder:
    """
    Turns entity records into a graph: one entity node per entity and one
    artifact node per enabled kind, each depending on its entity node.

    The builder has no side effects. Every cycle builds a fresh graph; only
    fingerprints survive between cycles.
    """

    def __init__(
        self,
        registry: GeneratorRegistry,
        fingerprinter: Fingerprinter,
        out_dir: str,
        generator_options: Optional[Dict[str, Dict[str, Any]]] = None,
        disabled_kinds: Optional[Iterable[str]] = None
    ):
        """
        Initialize graph builder.

        Args:
            registry: Generator registry used to resolve kinds
            fingerprinter: Fingerprint engine for the current engine version
            out_dir: Output directory, relative to the project root
            generator_options: Per-kind option overrides from configuration
            disabled_kinds: Kinds switched off globally
        """
        self.registry = registry
        self.fingerprinter = fingerprinter
        self.out_dir = PurePosixPath(out_dir)
        self.generator_options = generator_options or {}
        self.disabled_kinds = set(disabled_kinds or [])
        self.logger = logging.getLogger(__name__)

    def build(self, entities: List[EntityRecord]) -> Graph:
        """
        Build the graph for a list of entities.

        Raises:
            ValidationError: Duplicate entity names, unregistered artifact kinds
                or two artifacts resolving to the same output path
        """
        graph = Graph(engine_version=self.fingerprinter.engine_version)
        claimed_paths: Dict[str, str] = {}

        for entity in entities:
            if entity.name in graph.entities:
                first = graph.entities[entity.name]
                raise ValidationError(
                    f"Duplicate entity name '{entity.name}' "
                    f"({first.source_path or '<unknown>'} and {entity.source_path or '<unknown>'})"
                )
            graph.entities[entity.name] = entity

            entity_id = entity_node_id(entity.name)
            graph.add_node(Node(
                id=entity_id,
                kind=NodeKind.ENTITY.value,
                fingerprint=self.fingerprinter.entity_fingerprint(entity),
                entity=entity.name,
            ))

            for kind in self.enabled_kinds(entity):
                node = self._build_artifact_node(entity, kind, entity_id)

                owner = claimed_paths.get(node.output_path)
                if owner is not None:
                    raise ValidationError(
                        f"Output path clash: {owner} and {node.id} both write {node.output_path}"
                    )
                claimed_paths[node.output_path] = node.id
                graph.add_node(node)

        self.logger.debug(
            f"Built graph: {len(graph.entities)} entities, {len(graph.nodes)} nodes"
        )
        return graph

    def enabled_kinds(self, entity: EntityRecord) -> List[str]:
        """
        Artifact kinds enabled for an entity, in declaration order.

        Raises:
            ValidationError: If a declared kind has no registered generator
        """
        kinds = []
        for kind in entity.artifacts:
            if kind not in self.registry:
                raise ValidationError(
                    f"Entity '{entity.name}' declares artifact kind '{kind}' "
                    f"with no registered generator (known: {', '.join(self.registry.kinds())})"
                )
            if kind in self.disabled_kinds:
                continue
            kinds.append(kind)
        return kinds

    def _build_artifact_node(self, entity: EntityRecord, kind: str, entity_id: str) -> Node:
        generator = self.registry.get(kind)
        options = self.registry.resolve_options(kind, self.generator_options.get(kind))

        relative = PurePosixPath(generator.output_path(entity, options))
        if relative.is_absolute() or '..' in relative.parts:
            raise ValidationError(
                f"Generator '{kind}' produced an output path outside the output directory: {relative}"
            )

        return Node(
            id=artifact_node_id(kind, entity.name),
            kind=kind,
            fingerprint=self.fingerprinter.node_fingerprint(entity, kind, options),
            entity=entity.name,
            depends_on=[entity_id],
            output_path=str(self.out_dir / relative),
            generator_ref=f"{generator.__class__.__module__}.{generator.__class__.__name__}",
            options=options,
        )
