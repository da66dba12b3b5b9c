from .engine_cli import cli, EngineCLI

__all__ = ['cli', 'EngineCLI']
