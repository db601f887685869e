"""
Duplicate resolution engine: group store, selection, scan orchestration and deletion.
"""
from .store import GroupStore
from .selection import SelectionEngine
from .orchestrator import ScanOrchestrator
from .deletion import DeletionCoordinator
from .session import DuplicateSession

__all__ = [
    "GroupStore",
    "SelectionEngine",
    "ScanOrchestrator",
    "DeletionCoordinator",
    "DuplicateSession",
]
