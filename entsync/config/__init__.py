"""
Engine configuration and entity source loading.
"""

from .global_config_loader import EngineConfig, load_engine_config, find_config_file
from .entity_loader import EntityLoader
from .scanner import SourceLoader, YamlSourceLoader

__all__ = [
    'EngineConfig',
    'load_engine_config',
    'find_config_file',
    'EntityLoader',
    'SourceLoader',
    'YamlSourceLoader',
]
