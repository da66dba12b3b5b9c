"""
Base generator interface and the generator registry.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.models import EntityRecord, GeneratedArtifact


GENERATED_HEADER = "Generated by entsync. Do not edit by hand."


class ArtifactGenerator(ABC):
    """
    Abstract base class for artifact generators.

    A generator is a pure function of (entity, options): the same inputs must
    produce the same bytes and the same path.
    """

    kind: str = ""
    default_options: Dict[str, Any] = {}

    def __init__(self):
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    def output_path(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        """
        Path of the artifact, relative to the output directory (POSIX form).

        Args:
            entity: Entity record
            options: Resolved generator options
        """
        pass

    @abstractmethod
    def render(self, entity: EntityRecord, options: Dict[str, Any]) -> str:
        """Render the artifact text"""
        pass

    def generate(self, entity: EntityRecord, options: Dict[str, Any]) -> GeneratedArtifact:
        """
        Produce the artifact for one entity.

        Returns:
            GeneratedArtifact with UTF-8 content and relative path
        """
        text = self.render(entity, options)
        if not text.endswith("\n"):
            text += "\n"
        return GeneratedArtifact(content=text.encode('utf-8'), path=self.output_path(entity, options))


class GeneratorRegistry:
    """Maps artifact kinds to generator implementations"""

    def __init__(self, generators: Optional[List[ArtifactGenerator]] = None):
        self._generators: Dict[str, ArtifactGenerator] = {}
        for generator in generators or []:
            self.register(generator)

    def register(self, generator: ArtifactGenerator) -> None:
        if not generator.kind:
            raise ValueError(f"Generator {generator.__class__.__name__} does not declare a kind")
        if generator.kind in self._generators:
            raise ValueError(f"A generator is already registered for kind '{generator.kind}'")
        self._generators[generator.kind] = generator

    def get(self, kind: str) -> Optional[ArtifactGenerator]:
        return self._generators.get(kind)

    def __contains__(self, kind: str) -> bool:
        return kind in self._generators

    def kinds(self) -> List[str]:
        return sorted(self._generators)

    def resolve_options(self, kind: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Merge a generator's default options with configured overrides"""
        generator = self._generators[kind]
        options = dict(generator.default_options)
        options.update(overrides or {})
        return options
