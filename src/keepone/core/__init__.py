"""
Core duplicate detection: models, scanner, hasher, grouper and keeper strategies.

This package contains the foundation of keepone:
- FileScannerImpl: recursive directory traversal with size/extension filters
- HasherImpl + XXHashAlgorithmImpl: xxHash3-based full or partial content hashing
- FileGrouperImpl: size and digest grouping with single-file filtering
- strategies: pure keeper selection (newest / oldest / shortest path)
- Models: FileRef, DuplicateGroup, DuplicateStats, ScanProgress and boundary validation

All components are pure Python with no UI dependencies.
"""

from .models import (
    BackendSchemaError, DeleteResult, DuplicateGroup, DuplicateStats, FileRef, ScanParams,
    ScanPhase, ScanProgress, ScanResult, SearchState, SelectionStrategy, compute_stats
)
from .scanner import FileScannerImpl
from .hasher import HasherImpl, XXHashAlgorithmImpl
from .grouper import FileGrouperImpl
from .strategies import files_to_delete, pick_keeper

__all__ = [
    "BackendSchemaError",
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
    "compute_stats",
    "FileScannerImpl",
    "HasherImpl",
    "XXHashAlgorithmImpl",
    "FileGrouperImpl",
    "files_to_delete",
    "pick_keeper",
]
