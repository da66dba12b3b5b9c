"""
Error taxonomy for the build engine.

Every error aborts the running cycle. Load and validation errors happen before
any file is written; generation and write errors may leave earlier steps of the
same cycle on disk, but the engine state is never persisted for that cycle.
"""
from typing import Optional


class EngineError(Exception):
    """Base class for all fatal cycle errors"""


class LoadError(EngineError):
    """Entity source (or engine configuration) is unreadable or malformed"""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = str(path) if path is not None else None
        if self.path:
            message = f"{self.path}: {message}"
        super().__init__(message)


class ValidationError(EngineError):
    """Structural graph problem: duplicate ids, unknown generators, path clashes"""


class GenerationError(EngineError):
    """A generator failed while producing content for one node"""

    def __init__(self, node_id: str, cause: BaseException):
        self.node_id = node_id
        self.cause = cause
        super().__init__(f"Generator failed for {node_id}: {cause}")


class WriteError(EngineError):
    """Filesystem failure while writing or removing an artifact"""

    def __init__(self, path: str, cause: BaseException):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Failed to write {self.path}: {cause}")
