"""
Canonical fingerprint computation for graph nodes.
Hashes parsed entity content, never raw files, so formatting and comments in
entity sources do not cause rebuilds.
"""
import hashlib
import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict
import logging

from ..core.models import EntityRecord


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


def canonical_json(value: Any) -> str:
    """Serialize a value as canonical JSON (sorted keys, no whitespace)"""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(',', ':'),
        ensure_ascii=False,
        default=_json_default,
    )


def hash_bytes(data: bytes) -> str:
    """SHA256 hex digest of raw bytes"""
    return hashlib.sha256(data).hexdigest()


class Fingerprinter:
    """Computes node fingerprints for one engine version"""

    def __init__(self, engine_version: str):
        self.engine_version = engine_version
        self.logger = logging.getLogger(__name__)

    def entity_fingerprint(self, entity: EntityRecord) -> str:
        """
        Fingerprint of an entity node: its serialized definition plus the
        engine version.
        """
        payload = {
            'entity': entity.to_dict(),
            'engine_version': self.engine_version,
        }
        return hash_bytes(canonical_json(payload).encode('utf-8'))

    def node_fingerprint(self, entity: EntityRecord, kind: str, options: Dict[str, Any]) -> str:
        """
        Fingerprint of an artifact node.

        Args:
            entity: Entity the artifact is derived from
            kind: Artifact kind (part of the digest so kinds never collide)
            options: Resolved generator options

        Returns:
            SHA256 hash hex string
        """
        payload = {
            'entity': entity.content_dict(),
            'options': options,
            'engine_version': self.engine_version,
            'kind': kind,
        }
        try:
            canonical = canonical_json(payload)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Failed to compute fingerprint for {kind}:{entity.name}: {e}")
            raise
        return hash_bytes(canonical.encode('utf-8'))
