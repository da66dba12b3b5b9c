"""
Scans entity source directories and loads entity definitions.
"""
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import List, TYPE_CHECKING
import logging

from ..core.exceptions import LoadError
from ..core.models import EntityRecord
from .entity_loader import EntityLoader

if TYPE_CHECKING:
    from .global_config_loader import EngineConfig


class SourceLoader(ABC):
    """Interface returning plain entity records for a project"""

    @abstractmethod
    def load(self, project_root: Path, config: 'EngineConfig') -> List[EntityRecord]:
        """
        Load all entity records of a project.

        Raises:
            LoadError: If a source is unreadable or malformed
        """
        pass


class YamlSourceLoader(SourceLoader):
    """Loads entities from YAML files found under the configured entity paths"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def source_dirs(self, project_root: Path, config: 'EngineConfig') -> List[Path]:
        """Absolute entity directories of a project"""
        return [Path(project_root) / entity_path for entity_path in config.entities.paths]

    def scan_entity_files(self, project_root: Path, config: 'EngineConfig') -> List[Path]:
        """
        Recursively scan entity directories for definition files.

        Returns:
            Sorted list of matching files
        """
        files = set()

        for source_dir in self.source_dirs(project_root, config):
            if not source_dir.is_dir():
                raise LoadError("Entity path does not exist or is not a directory", source_dir)

            for pattern in config.entities.patterns:
                for entity_file in source_dir.rglob(pattern):
                    if entity_file.is_file():
                        files.add(entity_file)
                        self.logger.debug(f"Found entity file: {entity_file}")

        self.logger.info(f"Scanned {len(files)} entity files")
        return sorted(files)

    def load(self, project_root: Path, config: 'EngineConfig') -> List[EntityRecord]:
        project_root = Path(project_root)
        entities = []

        for entity_file in self.scan_entity_files(project_root, config):
            relative = self.get_relative_path(entity_file, project_root)
            for record in EntityLoader.load_from_yaml(str(entity_file)):
                entities.append(replace(record, source_path=relative))

        entities.sort(key=lambda record: (record.source_path or '', record.name))
        self.logger.info(f"Loaded {len(entities)} entities")
        return entities

    def get_relative_path(self, path: Path, project_root: Path) -> str:
        """
        Get path relative to the project root, in POSIX form.

        Args:
            path: Absolute path

        Returns:
            Relative path as string
        """
        try:
            return path.relative_to(project_root).as_posix()
        except ValueError:
            # If path is not relative to project_root, return as-is
            return path.as_posix()
