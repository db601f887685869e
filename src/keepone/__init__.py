"""
KeepOne: duplicate media detection and resolution engine.

Core features:
- Size bucketing, then content hashing (xxHash3-128) only where sizes collide
- Deterministic keeper selection per group: newest, oldest or shortest path
- Batched deletion to the system trash (via send2trash) with per-file results
  and statistics that stay consistent with the surviving groups
- asyncio engine with scan generations: cancelled or superseded scans never
  overwrite newer results
"""

from importlib.metadata import PackageNotFoundError, version as _version

try:
    __version__ = _version("keepone")
except PackageNotFoundError:
    __version__ = "0.0.0"

# Public API: only what users should import directly
from keepone.core import (
    DeleteResult, DuplicateGroup, DuplicateStats, FileRef, ScanParams, ScanPhase, ScanProgress,
    ScanResult, SearchState, SelectionStrategy
)
from keepone.engine import DuplicateSession
from keepone.services import DuplicateService, LocalHashingBackend
from keepone.utils.convert_utils import ConvertUtils

__all__ = [
    "DeleteResult",
    "DuplicateGroup",
    "DuplicateStats",
    "FileRef",
    "ScanParams",
    "ScanPhase",
    "ScanProgress",
    "ScanResult",
    "SearchState",
    "SelectionStrategy",
    "DuplicateSession",
    "DuplicateService",
    "LocalHashingBackend",
    "ConvertUtils",
    "__version__",
]
