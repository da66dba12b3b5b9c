"""
Persistence of the engine state: the manifest (node id -> fingerprint/path)
and the graph snapshot of the last successful cycle.
"""
import json
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from ..core.exceptions import WriteError
from ..core.models import EngineState, Graph, STATE_FORMAT_VERSION
from ..utils.file_ops import atomic_write_text


MANIFEST_FILENAME = "manifest.json"
GRAPH_FILENAME = "graph.json"


def render_document(data: Dict[str, Any]) -> str:
    """Normalized JSON document: sorted keys, 2-space indent, trailing newline"""
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False, default=str) + "\n"


class StateStore:
    """Reads and writes the durable engine state of one project"""

    def __init__(self, project_root: Path, state_dir: str = ".entsync"):
        """
        Initialize state store.

        Args:
            project_root: Project root directory
            state_dir: State directory, relative to the project root
        """
        self.state_dir = Path(project_root) / state_dir
        self.logger = logging.getLogger(__name__)

    @property
    def manifest_path(self) -> Path:
        return self.state_dir / MANIFEST_FILENAME

    @property
    def graph_path(self) -> Path:
        return self.state_dir / GRAPH_FILENAME

    def read_state(self) -> EngineState:
        """
        Load the manifest.

        Returns:
            EngineState; empty when there is no manifest yet, or when it is
            unreadable, corrupt or written in another format version. The next
            cycle then re-derives every artifact.
        """
        data = self._read_document(self.manifest_path)
        if data is None:
            return EngineState()

        version = data.get('version')
        if version != STATE_FORMAT_VERSION:
            self.logger.warning(
                f"Manifest {self.manifest_path} has format version {version}, "
                f"expected {STATE_FORMAT_VERSION}; starting fresh"
            )
            return EngineState()

        try:
            state = EngineState.from_dict(data)
        except (KeyError, TypeError, AttributeError) as e:
            self.logger.warning(f"Malformed manifest {self.manifest_path}: {e}; starting fresh")
            return EngineState()

        self.logger.debug(f"Loaded manifest with {len(state.entries)} entries")
        return state

    def read_graph(self) -> Optional[Dict[str, Any]]:
        """Load the graph snapshot document, or None if there is none"""
        return self._read_document(self.graph_path)

    def write(self, state: EngineState, graph: Graph) -> None:
        """
        Persist the graph snapshot and the manifest, each atomically.

        The manifest goes last: it is the document later cycles trust.

        Raises:
            WriteError: If either file cannot be written
        """
        for path, document in (
            (self.graph_path, graph.to_dict()),
            (self.manifest_path, state.to_dict()),
        ):
            try:
                atomic_write_text(path, render_document(document))
            except OSError as e:
                self.logger.error(f"Failed to save {path}: {e}")
                raise WriteError(str(path), e) from e

        self.logger.debug(f"State saved to {self.state_dir}")

    def _read_document(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.is_file():
            self.logger.info(f"No state file at {path}, starting fresh")
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self.logger.warning(f"Cannot load {path}: {e}; starting fresh")
            return None

        if not isinstance(data, dict):
            self.logger.warning(f"Unexpected document in {path}; starting fresh")
            return None
        return data
