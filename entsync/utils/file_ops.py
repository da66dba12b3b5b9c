"""
Filesystem helpers used by the applier and the state store.

Writes go through a temp file in the destination directory followed by
os.replace, so a crash never leaves a half-written file behind.
"""
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass
class SafeWriteResult:
    path: Path
    changed: bool


def read_file_if_exists(path: Path) -> Optional[bytes]:
    """Return file bytes, or None when the file does not exist"""
    try:
        with open(path, 'rb') as f:
            return f.read()
    except FileNotFoundError:
        return None


def atomic_write_bytes(path: Path, content: bytes) -> None:
    """
    Write bytes to path atomically.

    Args:
        path: Destination file
        content: Bytes to write
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.parent / f".tmp_{uuid.uuid4().hex[:8]}_{path.name}"

    try:
        with open(temp_path, 'wb') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(temp_path), str(path))
    finally:
        if temp_path.exists():
            temp_path.unlink()


def atomic_write_text(path: Path, text: str) -> None:
    atomic_write_bytes(path, text.encode('utf-8'))


def safe_write(path: Path, content: Union[str, bytes]) -> SafeWriteResult:
    """
    Content-comparing write.

    Reads the existing file first and skips the write when the bytes are
    identical, so callers can tell a real change from a predicted one.

    Args:
        path: Destination file
        content: New content (str is encoded as UTF-8)

    Returns:
        SafeWriteResult; changed is False when the write was skipped
    """
    path = Path(path)
    data = content.encode('utf-8') if isinstance(content, str) else content

    existing = read_file_if_exists(path)
    if existing is not None and existing == data:
        return SafeWriteResult(path=path, changed=False)

    atomic_write_bytes(path, data)
    return SafeWriteResult(path=path, changed=True)


def remove_file_if_exists(path: Path) -> bool:
    """
    Remove a file; absence is not an error.

    Returns:
        True if a file was removed
    """
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False


def prune_empty_dirs(start: Path, stop: Path) -> None:
    """Remove empty parent directories of start, up to (not including) stop"""
    current = Path(start)
    stop = Path(stop).resolve()
    while True:
        try:
            resolved = current.resolve()
        except OSError:
            return
        if resolved == stop or stop not in resolved.parents:
            return
        try:
            current.rmdir()
        except OSError:
            return
        current = current.parent
