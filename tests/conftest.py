"""Pytest configuration and fixtures for entsync tests."""

import sys
import textwrap
from pathlib import Path
from typing import Dict

import pytest
import logging

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from entsync.build.manager import BuildEngine
from entsync.config.global_config_loader import load_engine_config

# Configure logging
logging.basicConfig(level=logging.INFO)


USER_ENTITY = """
name: User
openapi: false
doc: true
fields:
  id: string
  email: string
"""


def write_file(path: Path, content: str) -> Path:
    """Write dedented text, creating parent directories"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip(), encoding='utf-8')
    return path


def snapshot_files(root: Path) -> Dict[str, int]:
    """Relative path -> mtime_ns of every file under root"""
    return {
        path.relative_to(root).as_posix(): path.stat().st_mtime_ns
        for path in sorted(root.rglob('*'))
        if path.is_file()
    }


def entity_yaml(name: str, fields: Dict[str, str], **flags) -> str:
    """Render a minimal entity definition"""
    lines = [f"name: {name}"]
    for key, value in flags.items():
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        lines.append(f"{key}: {value}")
    lines.append("fields:")
    for field_name, field_type in fields.items():
        lines.append(f"  {field_name}: {field_type}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def project(tmp_path):
    """Empty project with an entities directory"""
    (tmp_path / 'entities').mkdir()
    return tmp_path


@pytest.fixture
def write_entity(project):
    """Write entities/<name>.entity.yaml"""
    def _write(name: str, content: str) -> Path:
        return write_file(project / 'entities' / f"{name}.entity.yaml", content)
    return _write


@pytest.fixture
def make_engine(project):
    """Build an engine for the project, optionally overriding config attributes"""
    def _make(registry=None, **overrides) -> BuildEngine:
        config = load_engine_config(project)
        for key, value in overrides.items():
            setattr(config, key, value)
        return BuildEngine(project, config, registry=registry)
    return _make
