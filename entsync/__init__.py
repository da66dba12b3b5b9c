"""
entsync - keeps generated artifacts in sync with declarative entity definitions

Main modules:
- core: Data model (entities, graph nodes, plans, engine state) and errors
- config: Engine configuration and the entity source loader
- generators: Registry of artifact generators (schemas, API docs, migrations, docs, tests)
- build: Graph builder, fingerprints, planner, applier, state store and cycle manager
- watch: Debounced filesystem watcher that schedules cycles
- cli: Command-line interface
"""

from .version import __version__
from .core.models import EntityRecord, Graph, Plan, EngineState
from .core.exceptions import EngineError, LoadError, ValidationError, GenerationError, WriteError
from .config.global_config_loader import EngineConfig, load_engine_config
from .generators import default_registry
from .build.manager import BuildEngine
from .build.doctor import CoherenceChecker

__all__ = [
    '__version__',
    'EntityRecord',
    'Graph',
    'Plan',
    'EngineState',
    'EngineError',
    'LoadError',
    'ValidationError',
    'GenerationError',
    'WriteError',
    'EngineConfig',
    'load_engine_config',
    'default_registry',
    'BuildEngine',
    'CoherenceChecker',
]
