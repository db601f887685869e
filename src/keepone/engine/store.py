"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

engine/store.py
Authoritative in-memory set of current duplicate groups and their statistics.

The store has two writers only: the scan orchestrator (full replacement) and the
deletion coordinator (reconciliation). Everyone else reads.
"""
import logging
from typing import Callable, Dict, List, Optional

from keepone.core.models import DuplicateGroup, DuplicateStats

logger = logging.getLogger(__name__)

StoreListener = Callable[["GroupStore"], None]


class GroupStore:
    def __init__(self):
        self._groups: List[DuplicateGroup] = []
        self._index: Dict[str, DuplicateGroup] = {}
        self._stats: Optional[DuplicateStats] = None
        self._listeners: List[StoreListener] = []

    @property
    def groups(self) -> List[DuplicateGroup]:
        return list(self._groups)

    @property
    def stats(self) -> Optional[DuplicateStats]:
        return self._stats

    def get_group(self, group_hash: str) -> Optional[DuplicateGroup]:
        return self._index.get(group_hash)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Adds a listener notified after every replacement; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace(self, groups: List[DuplicateGroup], stats: Optional[DuplicateStats]) -> None:
        """Swaps in a new set of groups wholesale. Never merges with the previous content."""
        self._groups = list(groups)
        self._index = {group.hash: group for group in self._groups}
        self._stats = stats
        self._notify()

    def clear(self) -> None:
        self.replace([], None)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Error in group store listener")
