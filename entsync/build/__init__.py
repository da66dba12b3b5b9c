"""
Incremental build engine: graph construction, fingerprints, planning,
application and persisted state.
"""
from .hasher import Fingerprinter, canonical_json, hash_bytes
from .graph_builder import GraphBuilder
from .planner import Planner
from .applier import Applier
from .state_store import StateStore, MANIFEST_FILENAME, GRAPH_FILENAME
from .manager import BuildEngine, CyclePlan, CycleReport
from .doctor import CoherenceChecker, DoctorReport

__all__ = [
    'Fingerprinter',
    'canonical_json',
    'hash_bytes',
    'GraphBuilder',
    'Planner',
    'Applier',
    'StateStore',
    'MANIFEST_FILENAME',
    'GRAPH_FILENAME',
    'BuildEngine',
    'CyclePlan',
    'CycleReport',
    'CoherenceChecker',
    'DoctorReport',
]
