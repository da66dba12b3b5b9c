import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field

from ..core.enums import OUTPUT_KINDS
from ..core.exceptions import LoadError
from ..version import __version__


CONFIG_FILENAMES = ("entsync.yaml", "entsync.yml", "config/entsync.yaml")


@dataclass
class EntitiesConfig:
    """Where entity definitions are looked up"""
    paths: List[str] = field(default_factory=lambda: ["entities"])
    patterns: List[str] = field(default_factory=lambda: ["*.entity.yaml", "*.entity.yml"])


@dataclass
class WatchConfig:
    """Watcher configuration"""
    debounce_ms: int = 150
    ignore: List[str] = field(default_factory=lambda: [".git", "__pycache__", "node_modules"])


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class EngineConfig:
    """Configuration supplied to the engine at cycle start"""
    entities: EntitiesConfig = field(default_factory=EntitiesConfig)
    out_dir: str = "generated"
    state_dir: str = ".entsync"
    engine_version: str = __version__
    artifacts: Dict[str, bool] = field(default_factory=dict)  # kind -> enabled, missing means enabled
    generators: Dict[str, Dict[str, Any]] = field(default_factory=dict)  # kind -> options
    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    config_path: Optional[str] = None

    @property
    def disabled_kinds(self) -> List[str]:
        return sorted(kind for kind, enabled in self.artifacts.items() if not enabled)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EngineConfig':
        """Create EngineConfig from dictionary"""
        entities = data.get('entities') or {}
        if isinstance(entities, list):
            # Short form: `entities: [dir1, dir2]`
            entities = {'paths': entities}

        artifacts = data.get('artifacts') or {}
        unknown = sorted(set(artifacts) - OUTPUT_KINDS)
        if unknown:
            raise ValueError(f"Unknown artifact kinds in 'artifacts': {', '.join(unknown)}")

        engine_version = data.get('engine_version') or __version__

        config = cls(
            entities=EntitiesConfig(**entities),
            out_dir=data.get('out_dir', 'generated'),
            state_dir=data.get('state_dir', '.entsync'),
            engine_version=str(engine_version),
            artifacts={kind: bool(enabled) for kind, enabled in artifacts.items()},
            generators={kind: dict(options or {}) for kind, options in (data.get('generators') or {}).items()},
            watch=WatchConfig(**(data.get('watch') or {})),
            logging=LoggingConfig(**(data.get('logging') or {})),
        )
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'EngineConfig':
        """Load EngineConfig from YAML file"""
        path = Path(yaml_path)
        if not path.exists():
            # Return default config if file doesn't exist
            return cls.default()

        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
            if data is not None and not isinstance(data, dict):
                raise ValueError("top-level document must be a mapping")
            config = cls.from_dict(data or {})
        except (yaml.YAMLError, ValueError, TypeError) as e:
            raise LoadError(f"Invalid engine configuration: {e}", path) from e

        config.config_path = str(path)
        return config

    @classmethod
    def default(cls) -> 'EngineConfig':
        """Return default configuration"""
        return cls()

    def validate(self) -> None:
        if not self.entities.paths:
            raise ValueError("At least one entity path must be configured")
        if not self.entities.patterns:
            raise ValueError("At least one entity file pattern must be configured")
        if not self.out_dir or Path(self.out_dir).is_absolute():
            raise ValueError("out_dir must be a non-empty path relative to the project root")
        if not self.state_dir or Path(self.state_dir).is_absolute():
            raise ValueError("state_dir must be a non-empty path relative to the project root")
        if self.watch.debounce_ms < 0:
            raise ValueError("watch.debounce_ms must not be negative")


def find_config_file(project_root: Path) -> Optional[Path]:
    """Look for a config file in the standard locations of a project"""
    for name in CONFIG_FILENAMES:
        candidate = Path(project_root) / name
        if candidate.exists():
            return candidate
    return None


def load_engine_config(project_root: Path, config_path: Optional[str] = None) -> EngineConfig:
    """
    Load engine configuration for a project.

    Args:
        project_root: Project root directory
        config_path: Explicit config file (relative paths resolve against project_root)

    Returns:
        EngineConfig (defaults when no config file is found)
    """
    if config_path:
        path = Path(config_path)
        if not path.is_absolute():
            path = Path(project_root) / path
        if not path.exists():
            raise LoadError("Config file not found", path)
        return EngineConfig.from_yaml(str(path))

    found = find_config_file(project_root)
    if found is None:
        return EngineConfig.default()
    return EngineConfig.from_yaml(str(found))
