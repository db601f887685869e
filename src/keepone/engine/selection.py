"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

engine/selection.py
Cross-group selection of files pending deletion.

The selection set is a plain set of file ids. It is not validated against the
current groups: ids are toggled as given.
"""
import logging
from typing import FrozenSet, Iterable, Set

from keepone.core.models import SelectionStrategy
from keepone.core.strategies import files_to_delete
from keepone.engine.store import GroupStore

logger = logging.getLogger(__name__)


class SelectionEngine:
    def __init__(self, store: GroupStore):
        self.store = store
        self._selected: Set[str] = set()

    @property
    def selected_file_ids(self) -> FrozenSet[str]:
        return frozenset(self._selected)

    def is_selected(self, file_id: str) -> bool:
        return file_id in self._selected

    def select_file(self, file_id: str) -> None:
        self._selected.add(file_id)

    def deselect_file(self, file_id: str) -> None:
        self._selected.discard(file_id)

    def clear_selection(self) -> None:
        self._selected = set()

    def select_files_in_group(self, group_hash: str, file_ids: Iterable[str]) -> None:
        """
        Replaces the group's contribution to the selection with exactly `file_ids`.
        Every member of the group is deselected first, so applying a different
        strategy never leaves a stale selection behind.
        """
        group = self.store.get_group(group_hash)
        if group is not None:
            for file in group.files:
                self._selected.discard(file.id)
        self._selected.update(file_ids)

    def select_by_strategy(self, group_hash: str, strategy: SelectionStrategy) -> None:
        """Selects every file of the group except the keeper chosen by `strategy`."""
        strategy = SelectionStrategy(strategy)
        group = self.store.get_group(group_hash)
        if group is None or len(group.files) < 2:
            return

        to_delete = files_to_delete(group.files, strategy)
        logger.debug(f"Strategy {strategy.value} on group {group_hash}: {len(to_delete)} file(s) selected")
        self.select_files_in_group(group_hash, to_delete)

    def select_all_by_strategy(self, strategy: SelectionStrategy) -> None:
        for group in self.store.groups:
            self.select_by_strategy(group.hash, strategy)
