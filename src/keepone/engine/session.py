"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

engine/session.py
One explicitly owned duplicate engine: store, selection, scan orchestration and deletion
wired around a single hashing backend.

This is the single source of truth for duplicate resolution, used by the CLI and
by any presentation layer. It has no UI dependencies.

Usage:
    backend = LocalHashingBackend(ScanParams(root_dirs=["~/Pictures"]))
    session = DuplicateSession(backend)

    await session.start_search()
    for group in session.groups:
        session.select_by_strategy(group.hash, SelectionStrategy.NEWEST)
    await session.delete_selected()
"""
from typing import Any, FrozenSet, List, Mapping, Optional, Union

from keepone.core.interfaces import HashingBackend
from keepone.core.models import (
    DeleteResult, DuplicateGroup, DuplicateStats, ScanProgress, SearchState, SelectionStrategy
)
from keepone.engine.deletion import DeletionCoordinator
from keepone.engine.orchestrator import ScanOrchestrator
from keepone.engine.selection import SelectionEngine
from keepone.engine.store import GroupStore


class DuplicateSession:
    def __init__(self, backend: HashingBackend):
        self.backend = backend
        self.store = GroupStore()
        self.selection = SelectionEngine(self.store)
        self.orchestrator = ScanOrchestrator(backend, self.store, self.selection)
        self.deletion = DeletionCoordinator(backend, self.store, self.selection)

    # --- State ---

    @property
    def groups(self) -> List[DuplicateGroup]:
        return self.store.groups

    @property
    def stats(self) -> Optional[DuplicateStats]:
        return self.store.stats

    @property
    def progress(self) -> Optional[ScanProgress]:
        return self.orchestrator.progress

    @property
    def state(self) -> SearchState:
        return self.orchestrator.state

    @property
    def is_searching(self) -> bool:
        return self.orchestrator.is_searching

    @property
    def has_searched(self) -> bool:
        return self.orchestrator.has_searched

    @property
    def is_deleting(self) -> bool:
        return self.deletion.is_deleting

    @property
    def selected_file_ids(self) -> FrozenSet[str]:
        return self.selection.selected_file_ids

    # --- Search ---

    async def start_search(self) -> None:
        await self.orchestrator.start_search()

    def cancel_search(self) -> None:
        self.orchestrator.cancel_search()

    def set_progress(self, progress: Union[ScanProgress, Mapping[str, Any]]) -> None:
        self.orchestrator.set_progress(progress)

    # --- Selection ---

    def select_file(self, file_id: str) -> None:
        self.selection.select_file(file_id)

    def deselect_file(self, file_id: str) -> None:
        self.selection.deselect_file(file_id)

    def select_files_in_group(self, group_hash: str, file_ids: List[str]) -> None:
        self.selection.select_files_in_group(group_hash, file_ids)

    def clear_selection(self) -> None:
        self.selection.clear_selection()

    def select_by_strategy(self, group_hash: str, strategy: SelectionStrategy) -> None:
        self.selection.select_by_strategy(group_hash, strategy)

    def select_all_by_strategy(self, strategy: SelectionStrategy) -> None:
        self.selection.select_all_by_strategy(strategy)

    # --- Deletion ---

    async def delete_selected(self) -> List[DeleteResult]:
        return await self.deletion.delete_selected()

    # --- Lifecycle ---

    def reset(self) -> None:
        self.orchestrator.reset()
        self.deletion.is_deleting = False

    def close(self) -> None:
        self.orchestrator.close()
