"""
Artifact generators: one per artifact kind.
"""
from .base import ArtifactGenerator, GeneratorRegistry, GENERATED_HEADER
from .docs import MarkdownDocGenerator
from .migration import MigrationGenerator
from .openapi import OpenAPIGenerator
from .schema import JsonSchemaGenerator
from .smoke import SmokeTestGenerator


def default_registry() -> GeneratorRegistry:
    """Registry holding the built-in generators"""
    return GeneratorRegistry([
        JsonSchemaGenerator(),
        OpenAPIGenerator(),
        MigrationGenerator(),
        MarkdownDocGenerator(),
        SmokeTestGenerator(),
    ])


__all__ = [
    'ArtifactGenerator',
    'GeneratorRegistry',
    'GENERATED_HEADER',
    'JsonSchemaGenerator',
    'OpenAPIGenerator',
    'MigrationGenerator',
    'MarkdownDocGenerator',
    'SmokeTestGenerator',
    'default_registry',
]
